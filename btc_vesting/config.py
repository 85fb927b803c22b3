"""
Service configuration.
Values come from ``BTC_VESTING_*`` environment variables; tests build Settings directly.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Mapping, Optional, Tuple

DEFAULT_CORS_ORIGINS: Tuple[str, ...] = (
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:3000",
    "http://127.0.0.1:3000",
)


@dataclass(frozen=True)
class Settings:
    cors_origins: Tuple[str, ...] = DEFAULT_CORS_ORIGINS
    log_level: str = "INFO"

    # background calculations
    worker_threads: int = 2
    worker_timeout_seconds: float = 5.0

    # used when the advanced endpoint gets no employeeAnnualIncome
    default_employee_income: float = 100000.0

    testing: bool = field(default=False, compare=False)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        origins = env.get("BTC_VESTING_CORS_ORIGINS")
        return cls(
            cors_origins=(
                tuple(origin.strip() for origin in origins.split(",") if origin.strip())
                if origins
                else DEFAULT_CORS_ORIGINS
            ),
            log_level=env.get("BTC_VESTING_LOG_LEVEL", "INFO").upper(),
            worker_threads=int(env.get("BTC_VESTING_WORKER_THREADS", "2")),
            worker_timeout_seconds=float(env.get("BTC_VESTING_WORKER_TIMEOUT", "5.0")),
            default_employee_income=float(env.get("BTC_VESTING_DEFAULT_INCOME", "100000")),
        )
