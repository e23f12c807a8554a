import logging
import os
from dataclasses import dataclass
from dotenv import load_dotenv


@dataclass
class Settings:
    glide_api_base: str = "https://api.glideapps.com"
    shippo_api_base_test: str = "https://api.goshippo.com"
    shippo_api_base_live: str = "https://api.goshippo.com"
    row_page_size: int = 100
    max_pages: int = 10
    log_level: str = "INFO"


def get_settings() -> Settings:
    # Load .env if present
    load_dotenv(override=False)
    return Settings(
        glide_api_base=os.getenv("GLIDE_API_BASE", "https://api.glideapps.com").rstrip("/"),
        shippo_api_base_test=os.getenv("SHIPPO_API_BASE_TEST", "https://api.goshippo.com").rstrip("/"),
        shippo_api_base_live=os.getenv("SHIPPO_API_BASE_LIVE", "https://api.goshippo.com").rstrip("/"),
        row_page_size=int(os.getenv("GLIDE_ROW_PAGE_SIZE", "100")),
        max_pages=int(os.getenv("GLIDE_MAX_PAGES", "10")),
        log_level=os.getenv("GLIDE_LOG_LEVEL", "INFO").upper(),
    )


def setup_logging(settings: Settings) -> logging.Logger:
    logger = logging.getLogger("glide_nodes")
    logger.setLevel(getattr(logging, settings.log_level, logging.INFO))
    if not logger.handlers:
        sh = logging.StreamHandler()
        sh.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s"))
        logger.addHandler(sh)
    return logger
