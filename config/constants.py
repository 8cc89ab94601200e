import os
from typing import Dict, Any, List

__version__ = "1.0.0"

DEFAULT_CONFIG = {
    'origin': 'http://localhost:8080',
    'app_name': 'SmartDX',
    'cache_prefix': 'smartdx',
    'cache_version': 'v2.1.0',
    'fetch_timeout': 15.0,
    'max_transport_retries': 0,
    'default_output_format': 'tsv',
    'enforce_limit_on_bulk_cache': False,
    'shell_path': '/index.html',
    'user_agent': 'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36 SWCache/1.0.0',
    'default_headers': {
        'Accept': '*/*',
        'Accept-Language': 'en-US,en;q=0.9',
        'Accept-Encoding': 'gzip, deflate',
        'Connection': 'keep-alive',
    }
}

CACHE_LIMITS = {
    'max_dynamic_entries': 150,
    'max_api_entries': 50,
    'min_entries': 1,
    'max_entries': 100000,
}

# Precached at install time; any failure aborts the install.
STATIC_ASSETS: List[str] = [
    '/',
    '/index.html',
    '/favicon.png',
    '/favicon/android-chrome-192x192.png',
    '/favicon/android-chrome-512x512.png',
    '/manifest.webmanifest',
]

API_ENDPOINTS: List[str] = [
    '/api/',
    'https://apig.smartdx.co/',
    'https://apigd.smartdx.co/',
    'https://sdkmg.smartdx.co/',
    'https://sdkma.smartdx.co/',
]

FALLBACK_RESPONSES = {
    'static': (404, 'Asset not available'),
    'dynamic': (404, 'Resource not available'),
    'api': (503, 'API not available'),
    'navigation': (503, 'App not available offline'),
}

NOTIFICATION_CONFIG = {
    'icon': '/favicon/android-chrome-192x192.png',
    'badge': '/favicon/android-chrome-192x192.png',
    'vibrate': [100, 50, 100],
    'primary_key': '1',
}

BACKGROUND_SYNC_TAG = 'background-sync'

HTTP_CONFIG = {
    'pool_connections': 10,
    'pool_maxsize': 20,
    'retry_backoff_factor': 0.5,
    'retry_status_codes': [408, 425, 429, 500, 502, 503, 504],
    'allowed_schemes': ['http', 'https'],
}

EXIT_CODES = {
    'SUCCESS': 0,
    'USAGE_ERROR': 1,
    'NETWORK_ERROR': 2,
    'CONFIG_ERROR': 3,
    'INSTALL_ERROR': 4,
    'UNKNOWN_ERROR': 255
}

ENV_VARS = {
    'SWCACHE_ORIGIN': 'origin',
    'SWCACHE_VERSION': 'cache_version',
    'SWCACHE_PREFIX': 'cache_prefix',
    'SWCACHE_TIMEOUT': 'fetch_timeout',
    'SWCACHE_MAX_DYNAMIC': 'max_dynamic_entries',
    'SWCACHE_MAX_API': 'max_api_entries',
    'SWCACHE_LOG_LEVEL': 'log_level',
    'SWCACHE_LOG_FILE': 'log_file',
}

def get_version() -> str:
    return __version__

def get_user_agent() -> str:
    return DEFAULT_CONFIG['user_agent']

def get_default_headers() -> Dict[str, str]:
    return DEFAULT_CONFIG['default_headers'].copy()

def get_env_overrides() -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for env_name, key in ENV_VARS.items():
        value = os.getenv(env_name)
        if value is not None and value != "":
            out[key] = value
    return out

def is_valid_timeout(timeout: float) -> bool:
    return 0 < timeout <= 300

def is_valid_cache_size(size: int) -> bool:
    """Validate a per-namespace entry limit"""
    return CACHE_LIMITS['min_entries'] <= size <= CACHE_LIMITS['max_entries']
