"""Configuration management with environment variable support."""

import logging
import os
import secrets
from dataclasses import dataclass, field

from table_engine.rules import RuleSet


def _parse_cors_origins() -> list[str]:
    """Parse CORS_ORIGINS environment variable."""
    origins = os.getenv("CORS_ORIGINS", "http://localhost:8000")
    return [o.strip() for o in origins.split(",") if o.strip()]


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


@dataclass(frozen=True)
class CORSConfig:
    """CORS configuration."""

    allowed_origins: list[str] = field(default_factory=_parse_cors_origins)
    allow_credentials: bool = True
    allow_methods: list[str] = field(default_factory=lambda: ["*"])
    allow_headers: list[str] = field(default_factory=lambda: ["*"])


@dataclass(frozen=True)
class RateLimitConfig:
    """Rate limiting configuration."""

    enabled: bool = field(default_factory=lambda: _env_bool("RATE_LIMIT_ENABLED", "true"))
    requests_per_minute: int = field(
        default_factory=lambda: int(os.getenv("RATE_LIMIT_RPM", "60"))
    )


@dataclass(frozen=True)
class SecurityConfig:
    """Security configuration."""

    secret_key: str = field(
        default_factory=lambda: os.getenv("SECRET_KEY", secrets.token_urlsafe(32))
    )


@dataclass(frozen=True)
class GameConfig:
    """Default table rules."""

    num_decks: int = field(default_factory=lambda: int(os.getenv("NUM_DECKS", "6")))
    penetration: float = field(
        default_factory=lambda: float(os.getenv("DECK_PENETRATION", "0.75"))
    )
    dealer_hits_soft_17: bool = field(
        default_factory=lambda: _env_bool("DEALER_HITS_SOFT_17", "false")
    )
    blackjack_payout: float = field(
        default_factory=lambda: float(os.getenv("BLACKJACK_PAYOUT", "1.5"))
    )
    starting_bankroll: int = field(
        default_factory=lambda: int(os.getenv("STARTING_BANKROLL", "1000"))
    )
    max_split_hands: int = field(
        default_factory=lambda: int(os.getenv("MAX_SPLIT_HANDS", "3"))
    )
    double_after_split: bool = field(
        default_factory=lambda: _env_bool("DOUBLE_AFTER_SPLIT", "false")
    )
    surrender_allowed: bool = field(
        default_factory=lambda: _env_bool("SURRENDER_ALLOWED", "true")
    )

    def to_rules(self) -> RuleSet:
        """Build the table rules (raises ValueError on an invalid combination)."""
        return RuleSet(
            num_decks=self.num_decks,
            deck_penetration=self.penetration,
            dealer_hits_soft_17=self.dealer_hits_soft_17,
            blackjack_payout=self.blackjack_payout,
            allow_double_after_split=self.double_after_split,
            allow_surrender=self.surrender_allowed,
            max_split_hands=self.max_split_hands,
            starting_bankroll=self.starting_bankroll,
        )


@dataclass(frozen=True)
class AppConfig:
    """Application configuration."""

    debug: bool = field(default_factory=lambda: _env_bool("DEBUG", "false"))
    host: str = field(default_factory=lambda: os.getenv("HOST", "0.0.0.0"))
    port: int = field(default_factory=lambda: int(os.getenv("PORT", "8000")))
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper())
    session_ttl: int = field(default_factory=lambda: int(os.getenv("SESSION_TTL", "3600")))

    game: GameConfig = field(default_factory=GameConfig)
    cors: CORSConfig = field(default_factory=CORSConfig)
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)
    security: SecurityConfig = field(default_factory=SecurityConfig)


def configure_logging(level: str | None = None) -> None:
    """Apply LOG_LEVEL (or ``level``) to the root logger."""
    logging.basicConfig(
        level=level or config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# Global configuration instance
config = AppConfig()
