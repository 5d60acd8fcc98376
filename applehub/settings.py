"""
Configurações para o projeto AppleHub.
"""

import os
from decouple import config, Csv
from corsheaders.defaults import default_headers
from pathlib import Path

# Build paths inside the project like this: BASE_DIR / 'subdir'.
BASE_DIR = Path(__file__).resolve().parent.parent


# ====================================================================
# CONFIGURAÇÕES BÁSICAS
# ====================================================================

# A SECRET_KEY deve ser lida de uma variável de ambiente por segurança.
SECRET_KEY = config('SECRET_KEY', default='django-insecure-default-key-for-development')

# SECURITY WARNING: don't run with debug turned on in production!
DEBUG = config('DEBUG', default=False, cast=bool)

ALLOWED_HOSTS = config('ALLOWED_HOSTS', default='localhost,127.0.0.1,testserver', cast=Csv())


# ====================================================================
# APLICAÇÕES INSTALADAS
# ====================================================================

INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',

    # Aplicações de Terceiros (Primeiro)
    'corsheaders',
    'rest_framework',
    'drf_spectacular',
    'rest_framework_simplejwt',

    # Nossas Aplicações (Nessa ordem para referências de Models)
    'applehub.core.apps.CoreConfig', # Entidades e Lógica Pura
    'applehub.catalog.apps.CatalogConfig', # Catálogo de Produtos
    'applehub.infrastructure.apps.InfrastructureConfig', # Perfil, Configurações e Auditoria
    'applehub.carrinho.apps.CarrinhoConfig', # Carrinho de Compras
    'applehub.pedidos.apps.PedidosConfig', # Pedidos, Transações e Crédito
    'applehub.presentation.apps.PresentationConfig', # API REST
]


# ====================================================================
# MIDDLEWARE E TEMPLATES
# ====================================================================

MIDDLEWARE = [
    'corsheaders.middleware.CorsMiddleware',
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'applehub.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.debug',
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

WSGI_APPLICATION = 'applehub.wsgi.application'


# ====================================================================
# CONFIGURAÇÃO DO BANCO DE DADOS
# ====================================================================

# SQLite por padrão; em produção use DB_ENGINE=django.db.backends.postgresql (psycopg2).
DATABASES = {
    'default': {
        'ENGINE': config('DB_ENGINE', default='django.db.backends.sqlite3'),
        'NAME': config('DB_NAME', default=str(BASE_DIR / 'db.sqlite3')),
        'USER': config('DB_USER', default=''),
        'PASSWORD': config('DB_PASSWORD', default=''),
        'HOST': config('DB_HOST', default=''),
        'PORT': config('DB_PORT', default=''),
    }
}


# ====================================================================
# AUTENTICAÇÃO E VALIDAÇÃO DE SENHA
# ====================================================================

AUTH_PASSWORD_VALIDATORS = [
    {
        'NAME': 'django.contrib.auth.password_validation.UserAttributeSimilarityValidator',
    },
    {
        'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator',
    },
    {
        'NAME': 'django.contrib.auth.password_validation.CommonPasswordValidator',
    },
    {
        'NAME': 'django.contrib.auth.password_validation.NumericPasswordValidator',
    },
]


# ====================================================================
# INTERNACIONALIZAÇÃO
# ====================================================================

LANGUAGE_CODE = 'pt-br'

TIME_ZONE = 'America/Sao_Paulo'

USE_I18N = True

USE_TZ = True


# ====================================================================
# ARQUIVOS ESTÁTICOS
# ====================================================================

STATIC_URL = '/static/'
STATIC_ROOT = os.path.join(BASE_DIR, 'staticfiles')


# Default primary key field type
DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'


# ====================================================================
# CONFIGURAÇÕES DO DJANGO REST FRAMEWORK (DRF) E DOCS (SPECTACULAR)
# ====================================================================

SPECTACULAR_SETTINGS = {
    'TITLE': 'API da AppleHub',
    'DESCRIPTION': 'Carrinho, checkout, pagamentos Pagar.me (PIX e cartão) e administração da AppleHub.',
    'VERSION': '1.0.0',
    'SERVE_INCLUDE_SCHEMA': False,
}

REST_FRAMEWORK = {
    # JWT é a autenticação primária para API, SessionAuth para o Admin.
    'DEFAULT_AUTHENTICATION_CLASSES': (
        'rest_framework_simplejwt.authentication.JWTAuthentication',
        'rest_framework.authentication.SessionAuthentication',
    ),
    'DEFAULT_SCHEMA_CLASS': 'drf_spectacular.openapi.AutoSchema',
}


# ====================================================================
# CORS
# ====================================================================

CORS_ALLOWED_ORIGINS = config('CORS_ALLOWED_ORIGINS', default='http://localhost:5173', cast=Csv())
CORS_ALLOW_HEADERS = (*default_headers, 'x-hub-signature', 'x-client-info', 'apikey')


# ====================================================================
# REGRAS DE NEGÓCIO (Carrinho, PIX e Parcelamento)
# ====================================================================

CARRINHO_DEBOUNCE_SEGUNDOS = config('CARRINHO_DEBOUNCE_SEGUNDOS', default=0.5, cast=float)
CARRINHO_CACHE_HORAS = config('CARRINHO_CACHE_HORAS', default=24, cast=int)

PIX_EXPIRACAO_MINUTOS = config('PIX_EXPIRACAO_MINUTOS', default=30, cast=int)
PARCELAMENTO_NUM_PARCELAS = config('PARCELAMENTO_NUM_PARCELAS', default=24, cast=int)
PARCELAMENTO_JUROS_PERCENTUAL = config('PARCELAMENTO_JUROS_PERCENTUAL', default='2.0')


# ====================================================================
# CONFIGURAÇÕES DE SERVIÇOS EXTERNOS (Pagar.me, Geolocalização, E-mail e Logging)
# ====================================================================

PAGARME_API_URL = config('PAGARME_API_URL', default='https://api.pagar.me/core/v5')
IP_API_URL = config('IP_API_URL', default='http://ip-api.com/json')

# Usada quando não existe ConfiguracaoAdmin no banco
ADMIN_PASSWORD = config('ADMIN_PASSWORD', default='')


# Configurações de E-mail
EMAIL_BACKEND = config('EMAIL_BACKEND', default='django.core.mail.backends.smtp.EmailBackend')
EMAIL_HOST = config('EMAIL_HOST', default='localhost')
EMAIL_PORT = config('EMAIL_PORT', default=587, cast=int)
EMAIL_USE_TLS = config('EMAIL_USE_TLS', default=True, cast=bool)
EMAIL_HOST_USER = config('EMAIL_HOST_USER', default='')
EMAIL_HOST_PASSWORD = config('EMAIL_HOST_PASSWORD', default='')
DEFAULT_FROM_EMAIL = config('DEFAULT_FROM_EMAIL', default='AppleHub <noreply@applehub.com.br>')

# Página do frontend que recebe uid/token da redefinição de senha
PASSWORD_RESET_URL = config('PASSWORD_RESET_URL', default='http://localhost:5173/reset-password')


# Configurações de Logging
LOG_DIR = BASE_DIR / 'logs'
os.makedirs(LOG_DIR, exist_ok=True)

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'handlers': {
        'console': {
            'level': 'INFO',
            'class': 'logging.StreamHandler',
            'formatter': 'verbose',
        },
        'file': {
            'level': config('LOG_LEVEL', default='WARNING'),
            'class': 'logging.handlers.RotatingFileHandler',
            'filename': config('LOG_FILE', default=str(LOG_DIR / 'applehub.log')),
            'maxBytes': 1024 * 1024 * 5,  # 5 MB
            'backupCount': 5,
            'formatter': 'verbose',
        },
    },
    'formatters': {
        'verbose': {
            'format': '{levelname} {asctime} {module} {process:d} {thread:d} {message}',
            'style': '{',
        },
    },
    'loggers': {
        'django': {
            'handlers': ['console', 'file'],
            'level': 'WARNING',
            'propagate': True,
        },
        'applehub': {
            'handlers': ['console', 'file'],
            'level': config('APPLEHUB_LOG_LEVEL', default='INFO'),
            'propagate': False,
        },
    },
}
