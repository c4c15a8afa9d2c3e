import os

os.environ.setdefault('SECRET_KEY', 'dimple-test-secret-key')

from .base import *  # noqa: E402

DEBUG = False

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']
EMAIL_BACKEND = 'django.core.mail.backends.locmem.EmailBackend'
STORAGES['staticfiles'] = {'BACKEND': 'django.contrib.staticfiles.storage.StaticFilesStorage'}

AXES_ENABLED = False

TELEGRAM_BOT_TOKEN = ''
ADMIN_TELEGRAM_CHAT_ID = ''
TELEBIRR_API_URL = 'https://telebirr.test/v1'
TELEBIRR_API_KEY = 'test-key'
TELEBIRR_API_SECRET = 'test-secret'
TELEBIRR_SHORT_CODE = '500100'
