from __future__ import annotations

import mimetypes
import traceback
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, FastAPI, File, Form, Request, Response, UploadFile
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from pydantic import BaseModel, Field
from starlette.exceptions import HTTPException as StarletteHTTPException

from blog_platform import __version__
from blog_platform.auth import IdentityService, JWTSessionTokens, SessionClaims, get_session
from blog_platform.config import Config, load_config
from blog_platform.db import init_db
from blog_platform.posts import ImageIntake, ImageUpload, PostService
from blog_platform.result import ServiceResult


def _debug(msg: str) -> None:
    print(f"[api] {msg}")


# Messages returned when request validation fails for a given field.
FIELD_MESSAGES: Dict[str, str] = {
    "title": "Title must be between 3 and 100 characters",
    "content": "Content must be between 3 and 1000 characters",
    "name": "Name must be between 1 and 100 characters",
    "email": "Email must be a valid email address",
    "password": "Password must be at least 6 characters",
    "category_id": "Category id must be an integer",
    "published": "Published must be a boolean",
    "image": "Image must be an uploaded file",
}

# Served uploads whose type can't be guessed from the name keep the historical label.
DEFAULT_UPLOAD_MEDIA_TYPE = "image/png"


def _envelope(result: ServiceResult) -> JSONResponse:
    return JSONResponse(status_code=result.status_code, content=jsonable_encoder(result.envelope()))


def _error(status_code: int, message: str, headers: Optional[Dict[str, str]] = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "message": message},
        headers=headers,
    )


# -----------------------------
# Dependencies
# -----------------------------


def _identity(request: Request) -> IdentityService:
    return request.app.state.identity


def _posts(request: Request) -> PostService:
    return request.app.state.posts


def _read_upload(upload: Optional[UploadFile], max_bytes: int) -> Optional[ImageUpload]:
    # Browsers send an empty part when no file is chosen.
    if upload is None or not upload.filename:
        return None
    # One byte past the limit is enough for the size check to reject it.
    return ImageUpload(
        filename=upload.filename,
        content_type=upload.content_type or "",
        data=upload.file.read(max_bytes + 1),
    )


# -----------------------------
# Auth
# -----------------------------


class RegisterRequest(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    email: str = Field(min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    password: str = Field(min_length=6, max_length=255)


class LoginRequest(BaseModel):
    email: str = Field(min_length=1)
    password: str = Field(min_length=1)


def _cookie_secure(cfg: Config) -> bool:
    """Return whether auth cookies should be marked Secure."""
    # Browsers require Secure when SameSite=None
    if (cfg.AUTH_COOKIE_SAMESITE or "lax").lower() == "none":
        return True
    return bool(cfg.AUTH_COOKIE_SECURE)


def _set_auth_cookie(response: Response, *, token: str, cfg: Config) -> None:
    response.set_cookie(
        key=cfg.AUTH_COOKIE_NAME,
        value=str(token),
        httponly=True,
        samesite=(cfg.AUTH_COOKIE_SAMESITE or "lax").lower(),
        secure=_cookie_secure(cfg),
        max_age=int(cfg.AUTH_TOKEN_EXPIRE_MINUTES) * 60,
        path=cfg.AUTH_COOKIE_PATH or "/",
        domain=cfg.AUTH_COOKIE_DOMAIN,
    )


auth_router = APIRouter(prefix="/auth")


@auth_router.post("/register")
def auth_register(payload: RegisterRequest, identity: IdentityService = Depends(_identity)) -> JSONResponse:
    return _envelope(identity.register(name=payload.name, email=payload.email, password=payload.password))


@auth_router.post("/login")
def auth_login(
    payload: LoginRequest,
    request: Request,
    identity: IdentityService = Depends(_identity),
) -> JSONResponse:
    result = identity.login(email=payload.email, password=payload.password)
    response = _envelope(result)
    if result.success:
        _set_auth_cookie(response, token=result.extra["access_token"], cfg=request.app.state.cfg)
    return response


@auth_router.post("/logout")
def auth_logout(request: Request) -> JSONResponse:
    """Clear the browser session cookie."""
    cfg: Config = request.app.state.cfg
    response = _envelope(ServiceResult.ok("Logout success"))
    response.delete_cookie(key=cfg.AUTH_COOKIE_NAME, path=cfg.AUTH_COOKIE_PATH or "/", domain=cfg.AUTH_COOKIE_DOMAIN)
    return response


@auth_router.get("/me")
def auth_me(session: SessionClaims = Depends(get_session)) -> JSONResponse:
    return _envelope(ServiceResult.ok("Get Data User!", session.as_dict()))


# -----------------------------
# Posts
# -----------------------------

posts_router = APIRouter(prefix="/posts")


@posts_router.get("")
def list_posts(
    session: SessionClaims = Depends(get_session),
    posts: PostService = Depends(_posts),
) -> JSONResponse:
    return _envelope(posts.list(session))


@posts_router.get("/{post_id}")
def get_post(
    post_id: str,
    session: SessionClaims = Depends(get_session),
    posts: PostService = Depends(_posts),
) -> JSONResponse:
    return _envelope(posts.get(session, post_id))


@posts_router.post("")
def create_post(
    title: str = Form(..., min_length=3, max_length=100),
    content: str = Form(..., min_length=3, max_length=1000),
    image: Optional[UploadFile] = File(None),
    category_id: Optional[int] = Form(None),
    published: Optional[bool] = Form(None),
    session: SessionClaims = Depends(get_session),
    posts: PostService = Depends(_posts),
) -> JSONResponse:
    return _envelope(
        posts.create(
            session,
            title=title,
            content=content,
            image=_read_upload(image, posts.max_upload_bytes),
            category_id=category_id,
            published=published,
        )
    )


@posts_router.patch("/{post_id}")
def update_post(
    post_id: str,
    title: Optional[str] = Form(None, min_length=3, max_length=100),
    content: Optional[str] = Form(None, min_length=3, max_length=1000),
    image: Optional[UploadFile] = File(None),
    category_id: Optional[int] = Form(None),
    published: Optional[bool] = Form(None),
    session: SessionClaims = Depends(get_session),
    posts: PostService = Depends(_posts),
) -> JSONResponse:
    return _envelope(
        posts.update(
            session,
            post_id,
            title=title,
            content=content,
            image=_read_upload(image, posts.max_upload_bytes),
            category_id=category_id,
            published=published,
        )
    )


@posts_router.delete("/{post_id}")
def delete_post(
    post_id: str,
    session: SessionClaims = Depends(get_session),
    posts: PostService = Depends(_posts),
) -> JSONResponse:
    return _envelope(posts.delete(session, post_id))


# -----------------------------
# Categories
# -----------------------------

categories_router = APIRouter(prefix="/categories")


@categories_router.get("")
def list_categories(posts: PostService = Depends(_posts)) -> JSONResponse:
    return _envelope(posts.categories())


# -----------------------------
# Error mapping
# -----------------------------


def _validation_message(exc: RequestValidationError) -> str:
    for err in exc.errors():
        loc = err.get("loc") or ()
        field = str(loc[-1]) if loc else ""
        if field in FIELD_MESSAGES:
            return FIELD_MESSAGES[field]
    errors = exc.errors()
    if errors:
        return str(errors[0].get("msg") or "Invalid request")
    return "Invalid request"


def _install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(RequestValidationError)
    async def _on_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        return _error(400, _validation_message(exc))

    @app.exception_handler(StarletteHTTPException)
    async def _on_http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code == 401:
            _debug(f"unauthorized {request.method} {request.url.path}: {exc.detail}")
            return _error(401, "Unauthorized", headers=getattr(exc, "headers", None))
        return _error(exc.status_code, str(exc.detail))

    @app.exception_handler(Exception)
    async def _on_unhandled(request: Request, exc: Exception) -> JSONResponse:
        _debug(f"unhandled error on {request.method} {request.url.path}: {exc}\n{traceback.format_exc()}")
        return _error(500, "Internal server error")


# -----------------------------
# App
# -----------------------------


def create_app(cfg: Config | None = None) -> FastAPI:
    cfg = cfg or load_config()
    app = FastAPI(title="Blog Platform", version=__version__)

    tokens = JWTSessionTokens(secret=cfg.AUTH_JWT_SECRET, expires_minutes=cfg.AUTH_TOKEN_EXPIRE_MINUTES)
    images = ImageIntake(
        upload_dir=cfg.UPLOAD_DIR,
        max_bytes=cfg.UPLOAD_MAX_BYTES,
        allowed_types=cfg.UPLOAD_ALLOWED_TYPES,
    )

    # Shared with request handlers and the session dependency.
    app.state.cfg = cfg
    app.state.tokens = tokens
    app.state.images = images
    app.state.identity = IdentityService(db_dsn=cfg.DB_DSN, tokens=tokens)
    app.state.posts = PostService(db_dsn=cfg.DB_DSN, images=images)

    # CORS is mainly needed for local development (frontend dev server -> API).
    cors_origins = [o.strip() for o in (cfg.CORS_ALLOW_ORIGINS or "").split(",") if o.strip()]
    if cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.on_event("startup")
    def _on_startup() -> None:
        init_db(cfg.DB_DSN)
        images.ensure_dir()

    @app.get("/health")
    def health() -> Dict[str, Any]:
        return {"status": "ok"}

    @app.get("/uploads/{filename}")
    def serve_upload(filename: str) -> Response:
        path = images.resolve(filename)
        if path is None:
            return _error(404, "File not found")
        media_type = mimetypes.guess_type(path.name)[0] or DEFAULT_UPLOAD_MEDIA_TYPE
        return FileResponse(path, media_type=media_type)

    api = APIRouter(prefix="/api")
    api.include_router(auth_router)
    api.include_router(posts_router)
    api.include_router(categories_router)
    app.include_router(api)

    _install_error_handlers(app)
    return app


app = create_app()
