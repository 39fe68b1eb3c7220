from dataclasses import dataclass
from functools import lru_cache
import os

DEFAULT_ALLOWED_ORIGINS = ("http://localhost:5173", "http://localhost:3000")


def _to_int(value: str | None, *, default: int, minimum: int) -> int:
    if value is None:
        return default
    parsed = int(value)
    return max(minimum, parsed)


def _to_float(value: str | None, *, default: float, minimum: float) -> float:
    if value is None:
        return default
    parsed = float(value)
    return max(minimum, parsed)


def _normalize_origin(origin: str) -> str:
    return origin.strip().rstrip("/")


def _allowed_origins(extra_origins: str | None, frontend_url: str | None) -> tuple[str, ...]:
    candidates = list(DEFAULT_ALLOWED_ORIGINS)
    if extra_origins:
        candidates.extend(extra_origins.split(","))
    if frontend_url:
        candidates.append(frontend_url)

    origins: list[str] = []
    for candidate in candidates:
        normalized = _normalize_origin(candidate)
        if normalized and normalized not in origins:
            origins.append(normalized)
    return tuple(origins)


@dataclass(frozen=True)
class Settings:
    upload_dir: str
    allowed_origins: tuple[str, ...]
    groq_api_key: str | None
    groq_base_url: str
    groq_model: str
    groq_fallback_model: str
    groq_timeout_seconds: float
    groq_temperature: float
    groq_max_tokens: int
    qa_min_chunk_chars: int
    qa_top_k: int
    qa_snippet_chars: int
    log_level: str
    host: str
    port: int

    @property
    def llm_configured(self) -> bool:
        return bool(self.groq_api_key)


@lru_cache
def get_settings() -> Settings:
    return Settings(
        upload_dir=os.getenv("DOCQA_UPLOAD_DIR", "uploads"),
        allowed_origins=_allowed_origins(os.getenv("ALLOWED_ORIGINS"), os.getenv("FRONTEND_URL")),
        groq_api_key=os.getenv("GROQ_API_KEY", "").strip() or None,
        groq_base_url=os.getenv("GROQ_BASE_URL", "https://api.groq.com/openai/v1"),
        groq_model=os.getenv("GROQ_MODEL", "llama-3.3-70b-versatile"),
        groq_fallback_model=os.getenv("GROQ_FALLBACK_MODEL", "llama-3.1-8b-instant"),
        groq_timeout_seconds=_to_float(
            os.getenv("GROQ_TIMEOUT_SECONDS"), default=30.0, minimum=1.0
        ),
        groq_temperature=_to_float(os.getenv("GROQ_TEMPERATURE"), default=0.1, minimum=0.0),
        groq_max_tokens=_to_int(os.getenv("GROQ_MAX_TOKENS"), default=1024, minimum=16),
        qa_min_chunk_chars=_to_int(os.getenv("QA_MIN_CHUNK_CHARS"), default=50, minimum=0),
        qa_top_k=_to_int(os.getenv("QA_TOP_K"), default=5, minimum=1),
        qa_snippet_chars=_to_int(os.getenv("QA_SNIPPET_CHARS"), default=100, minimum=1),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        host=os.getenv("HOST", "0.0.0.0"),
        port=_to_int(os.getenv("PORT"), default=5000, minimum=1),
    )
