from .fetcher import fetch_page, normalize_url, FetchOptions, FetchResult
from .document import ParsedDocument
from .discovery import discover_resources, fetch_robots_txt, find_sitemap
from .seo_checks import CHECKS
from .analyzer import analyze
