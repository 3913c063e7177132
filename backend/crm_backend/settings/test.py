from .base import *

DEBUG = False
SECRET_KEY = "test-secret"
SIMPLE_JWT["SIGNING_KEY"] = SECRET_KEY

DATABASES = {"default": {"ENGINE": "django.db.backends.sqlite3", "NAME": ":memory:"}}

REST_FRAMEWORK["DEFAULT_RENDERER_CLASSES"] = ["rest_framework.renderers.JSONRenderer"]

CRM_ENABLE_AUTH = False
CRM_DB_RETRY_MAX_DELAY = 0
PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]
REST_FRAMEWORK["TEST_REQUEST_DEFAULT_FORMAT"] = "json"
