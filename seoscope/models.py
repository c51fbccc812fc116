from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any
from enum import Enum


class AnalysisStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    COMPLETED_WITH_ERRORS = "completed_with_errors"
    FAILED = "failed"


class CheckStatus(str, Enum):
    OK = "ok"
    WARNING = "warning"
    ERROR = "error"
    PENDING = "pending"


# ─── Request Models ────────────────────────────────────────────────────────────

class AnalyzeRequest(BaseModel):
    url: str = Field(..., description="Page to analyze; a bare host gets http://")

    model_config = {
        "json_schema_extra": {
            "example": {"url": "example.com"}
        }
    }


# ─── Check Value Models ────────────────────────────────────────────────────────

class HttpsInfo(BaseModel):
    uses_https: bool
    final_url: str


class MetaText(BaseModel):
    value: Optional[str] = None
    length: int = 0


class OpenGraph(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = None
    url: Optional[str] = None
    type: Optional[str] = None


class TwitterCard(BaseModel):
    card: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = None


class MetaTagsInfo(BaseModel):
    title: MetaText
    description: MetaText
    keywords: Optional[str] = None
    viewport: Optional[str] = None
    canonical: Optional[str] = None
    robots: Optional[str] = None
    charset: Optional[str] = None
    open_graph: OpenGraph
    twitter_card: TwitterCard


class HeadingsInfo(BaseModel):
    structure: Dict[str, List[str]] = {}
    counts: Dict[str, int] = {}
    total: int = 0
    h1_count: int = 0
    h1_content: List[str] = []


class ImageInfo(BaseModel):
    src: str
    alt: Optional[str] = None          # None = attribute missing, "" = presentational
    width: Optional[int] = None
    height: Optional[int] = None
    missing_alt: bool = False
    presentational_alt: bool = False
    likely_decorative: bool = False


class ImagesInfo(BaseModel):
    images: List[ImageInfo] = []
    count: int = 0
    missing_alt_count: int = 0
    presentational_alt_count: int = 0
    likely_decorative_count: int = 0


class ContentInfo(BaseModel):
    word_count: int = 0
    text_length: int = 0
    html_length: int = 0
    text_html_ratio: float = 0.0


class MobileInfo(BaseModel):
    has_viewport_meta: bool = False
    viewport_content: Optional[str] = None
    has_width_device_width: bool = False
    has_initial_scale: bool = False
    uses_flash: bool = False


class SchemaBlock(BaseModel):
    data: Optional[Any] = None
    error: Optional[str] = None
    snippet: Optional[str] = None


class SchemaInfo(BaseModel):
    has_schema: bool = False
    json_ld_count: int = 0
    json_ld_parse_errors: int = 0
    has_microdata: bool = False
    detected_types: List[str] = []
    blocks: List[SchemaBlock] = []


class PerformanceInfo(BaseModel):
    analysis_tool: str = "pending_integration"
    lcp: Optional[float] = None
    inp: Optional[float] = None
    cls: Optional[float] = None
    fcp: Optional[float] = None
    ttfb: Optional[float] = None


class HreflangTag(BaseModel):
    lang: str
    href: Optional[str] = None


class HreflangInfo(BaseModel):
    has_hreflang: bool = False
    has_x_default: bool = False
    tags: List[HreflangTag] = []


class LinksInfo(BaseModel):
    total: int = 0
    internal_count: int = 0
    external_count: int = 0
    nofollow_count: int = 0


class RobotsTxtInfo(BaseModel):
    exists: bool = False
    url: Optional[str] = None
    content: Optional[str] = None
    disallows_all: bool = False
    sitemaps: List[str] = []
    error: Optional[str] = None


class SitemapInfo(BaseModel):
    exists: bool = False
    url: Optional[str] = None
    candidates: List[str] = []
    error: Optional[str] = None


# ─── Result Models ─────────────────────────────────────────────────────────────

class CheckResult(BaseModel):
    name: str
    status: CheckStatus
    value: Optional[Any] = None
    details: List[str] = []
    score: Optional[int] = None
    error: Optional[str] = None


class Report(BaseModel):
    url: str
    final_url: Optional[str] = None
    http_status: Optional[int] = None
    analysis_time_ms: int = 0
    analysis_status: AnalysisStatus = AnalysisStatus.PENDING
    checks: Dict[str, CheckResult] = {}
    overall_score: Optional[int] = None
    summary: Optional[str] = None
    error_message: Optional[str] = None
    error_type: Optional[str] = None


class ReportListResponse(BaseModel):
    reports: List[Dict[str, Any]] = []
    current_page: int
    total_pages: int
    total_reports: int
