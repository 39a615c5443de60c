"""
Django settings for Stockledger tests.
"""

SECRET_KEY = 'stockledger-tests'

INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.contenttypes',
    'django.contrib.auth',
    'django.contrib.sessions',
    'django.contrib.messages',
    'stockledger',
]

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

USE_TZ = True
TIME_ZONE = 'America/Sao_Paulo'

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

STOCKLEDGER = {
    'STORE_BACKEND': 'stockledger.adapters.django_orm.DjangoStore',
}

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'loggers': {
        'stockledger': {'level': 'DEBUG'},
    },
}

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]
