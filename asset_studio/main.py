from .api import register_routes
from fastapi import FastAPI
from .logging import configure_logging, LogLevels
from .rate_limiting import limiter
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

import logging
import os
from fastapi.middleware.cors import CORSMiddleware

configure_logging(LogLevels.info)


app = FastAPI(title="Asset Studio")
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Storage tables are created lazily by the workspace dependency.
register_routes(app)

# Comma-separated, e.g. ALLOWED_ORIGINS="https://studio.example.com,https://other.example.com"
allowed_origins_str = os.getenv("ALLOWED_ORIGINS", "")
origins = [
    origin.strip() for origin in allowed_origins_str.split(",") if origin.strip()
]

# Fallback for local development
if not origins and os.getenv("STUDIO_ENV") != "production":
    origins = [
        "http://localhost",
        "http://localhost:3000",
        "http://localhost:5173",
        "http://localhost:8080",
    ]
    logging.warning(
        f"ALLOWED_ORIGINS not set. Using default development origins: {origins}"
    )

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
