"""BudgetFlow configuration settings.

Loads configuration from environment variables with sensible defaults.
"""

import os
from dataclasses import dataclass, field
from dotenv import load_dotenv

# Load .env file for local configuration (API host, feature flags, etc.)
load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


@dataclass
class Settings:
    """Application settings loaded from environment variables."""

    # Remote API
    api_base_url: str = field(default_factory=lambda: os.getenv("BUDGET_API_BASE_URL", "http://localhost:3000"))
    api_timeout_seconds: float = field(default_factory=lambda: float(os.getenv("BUDGET_API_TIMEOUT_SECONDS", "30")))

    # Comparison
    max_comparisons: int = field(default_factory=lambda: int(os.getenv("MAX_COMPARISONS", "4")))
    budgets_page_size: int = field(default_factory=lambda: int(os.getenv("BUDGETS_PAGE_SIZE", "20")))
    search_debounce_seconds: float = field(default_factory=lambda: float(os.getenv("SEARCH_DEBOUNCE_SECONDS", "0.3")))

    # Generation wizard
    wizard_total_steps: int = field(default_factory=lambda: int(os.getenv("WIZARD_TOTAL_STEPS", "4")))
    wizard_auto_advance: bool = field(default_factory=lambda: _env_bool("WIZARD_AUTO_ADVANCE", "true"))
    auto_advance_delay_seconds: float = field(default_factory=lambda: float(os.getenv("AUTO_ADVANCE_DELAY_SECONDS", "0.5")))

    # Logging
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))

    def validate(self) -> None:
        """Validate settings values.

        Raises:
            ValueError: If a setting is out of its usable range.
        """
        if self.max_comparisons < 2:
            raise ValueError("MAX_COMPARISONS must allow at least 2 budgets")
        if self.api_timeout_seconds <= 0:
            raise ValueError("BUDGET_API_TIMEOUT_SECONDS must be positive")
        if self.auto_advance_delay_seconds < 0 or self.search_debounce_seconds < 0:
            raise ValueError("Delays must not be negative")


# Singleton settings instance
settings = Settings()
