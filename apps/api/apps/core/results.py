"""
Service results carrying best-effort warnings.
"""
from dataclasses import dataclass, field
from typing import Any, List


@dataclass
class ServiceResult:
    """
    Outcome of an operation whose side channels may have partially failed.
    
    `instance` is the successfully mutated entity; `warnings` lists
    human-readable messages for side-channel failures (asset deletion,
    notification dispatch) that did not block the operation.
    """
    instance: Any
    warnings: List[str] = field(default_factory=list)
    
    def warn(self, message: str):
        self.warnings.append(message)
    
    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings)
