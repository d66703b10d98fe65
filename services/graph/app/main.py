from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.config import get_settings
from app.database import dispose_db, init_db
from app.rate_limit import limiter
from app.social_graph.admin_router import router as social_admin_router
from app.social_graph.router import router as social_router
from app.users.router import router as users_router
from shared.logging_config import configure_logging
from shared.middleware.error_handler import error_envelope_middleware, http_exception_handler
from shared.middleware.request_id import request_id_middleware


# ── OpenAPI metadata ──────────────────────────────────────────────────────────

_DESCRIPTION = """
## Social Graph Service

Owns the relationships between users and keeps every denormalised counter in
lock-step with the edges it summarises:

* **Follows** — unidirectional edges; following a private account creates a
  follow request instead.
* **Follow requests** — pending → accepted / rejected, cancellable by the requester.
* **Blocks** — remove follows, requests and close-friend entries in both directions;
  a user who blocked you is indistinguishable from a missing user.
* **Close friends** — per-owner list, single or bulk add/remove.
* **Listings** — every list is cursor-paginated by edge id (newest first).

### Authentication
All endpoints require:
```
Authorization: Bearer <access_token>
```
Admin endpoints additionally require the `admin` or `super_admin` role in the token.

### Error shape
All errors return a consistent JSON envelope:
```json
{ "error": { "code": "not_found", "message": "User not found." }, "request_id": "..." }
```
Codes: `not_found`, `invalid_operation`, `permission_denied`, `conflict`.

### Rate limits
`429 Too Many Requests` is returned when the follow rate limit (50/hour) is exceeded.
"""

_TAGS_METADATA = [
    {
        "name": "users",
        "description": (
            "`GET /users/me` returns your profile with every graph counter. "
            "`GET /users/{user_id}` returns another user's profile plus your relation to "
            "them (404 if they blocked you; `can_view_content=false` if private)."
        ),
    },
    {
        "name": "social-graph",
        "description": (
            "Follows, follow requests, blocks and close friends, plus the paginated "
            "listings for each."
        ),
    },
    {
        "name": "admin-social-graph",
        "description": "**Admin only.** Counter reconciliation against live edge counts.",
    },
]


# ── Health schema ─────────────────────────────────────────────────────────────

class HealthResponse(BaseModel):
    status: str
    service: str


# ── App factory ───────────────────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    configure_logging(settings.log_level)
    init_db(settings.graph_database_url)
    yield
    await dispose_db()


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(
        title="Social Graph Service",
        version="1.0.0",
        description=_DESCRIPTION,
        openapi_tags=_TAGS_METADATA,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # Attach rate limiter state before middleware
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)

    # Middleware is applied in reverse-registration order (last added = outermost).
    # CORS must be outermost so ALL responses (including 429s) carry CORS headers.
    app.add_middleware(SlowAPIMiddleware)
    app.middleware("http")(error_envelope_middleware)
    app.middleware("http")(request_id_middleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        max_age=600,
    )

    # Social graph first: its literal /users/... paths must win over /users/{user_id}.
    app.include_router(social_router, prefix="/api/v1")
    app.include_router(users_router, prefix="/api/v1")
    app.include_router(social_admin_router, prefix="/api/v1")

    @app.get("/health", response_model=HealthResponse, tags=["health"], include_in_schema=True)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok", service="graph")

    return app


app = create_app()
