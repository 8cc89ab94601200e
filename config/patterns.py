from typing import Dict, List

# Path patterns for assets cached on first access.
CACHE_ON_DEMAND_PATTERNS: Dict[str, str] = {
    'asset_extension': r'\.(?:js|css|woff2?|png|jpg|jpeg|svg|gif|webp)$',
    'assets_segment': r'/assets/',
    'static_segment': r'/static/',
}

DYNAMIC_PATH_SEGMENTS: List[str] = [
    '/assets/',
    '/static/',
]

DYNAMIC_PATH_SUFFIXES: List[str] = [
    '.json',
]

NAVIGATION_ACCEPT_TYPES: List[str] = [
    'text/html',
]

NAVIGATION_MODE = 'navigate'
