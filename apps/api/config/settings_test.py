"""
Test settings: SQLite database, fast hashing, in-memory asset storage.

The test database is a file so that worker threads share it; set
DATABASE_ENGINE=django.db.backends.postgresql to run against PostgreSQL.
"""
import os
import tempfile

from .settings import *  # noqa: F401,F403
from .settings import WILDCARE

DEBUG = False

if not os.environ.get('DATABASE_ENGINE', '').endswith('postgresql'):
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.sqlite3',
            'NAME': os.path.join(tempfile.gettempdir(), 'wildcare.sqlite3'),
            'OPTIONS': {
                # Writers queue on the database lock instead of failing
                'timeout': 20,
                'transaction_mode': 'IMMEDIATE',
            },
            'TEST': {
                'NAME': os.path.join(tempfile.gettempdir(), 'wildcare_test.sqlite3'),
            },
        }
    }

PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']

WILDCARE = {
    **WILDCARE,
    'ASSET_STORAGE': 'apps.integrations.storage.InMemoryAssetStorage',
}
