import logging
import re

import uvicorn
from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse

from linkgate import accounts, auth, crud, database, errors, models, schemas
from linkgate.config import Settings, load_settings

# --- Logging ---
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
)
logger = logging.getLogger("linkgate")

router = APIRouter()
admin = APIRouter(prefix="/admin", dependencies=[Depends(auth.require_admin)])
redirects = APIRouter()


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


# Health check (useful for uptime monitors & load balancers)
@router.get("/health", include_in_schema=False)
def health(settings: Settings = Depends(get_settings)):
    return {"status": "ok", "env": settings.environment}

# ---------- Accounts ----------
@router.post("/signup", status_code=201, response_model=schemas.MessageOut)
def signup(body: schemas.SignupIn, db=Depends(database.get_db), settings: Settings = Depends(get_settings)):
    accounts.register(db, body.username, body.password, body.role, rounds=settings.bcrypt_rounds)
    return {"message": "User created successfully"}

@router.post("/login", response_model=schemas.Token)
def login(body: schemas.LoginIn, db=Depends(database.get_db),
          tokens: auth.TokenService = Depends(auth.get_token_service)):
    user = accounts.verify_credentials(db, body.username, body.password)
    logger.info("Issued token for user=%s role=%s", user.username, user.role)
    return {"token": tokens.issue(user), "token_type": "bearer"}

# ---------- Links ----------
@router.post("/convert", response_model=schemas.ConvertOut)
def convert(body: schemas.ConvertIn, db=Depends(database.get_db), settings: Settings = Depends(get_settings),
            claims: auth.Claims = Depends(auth.get_current_claims)):
    link = crud.create_for_owner(
        db, body.link, claims.id,
        length=settings.code_length, attempts=settings.code_attempts,
    )
    logger.info("Converted link id=%s code=%s by=%s", link.id, link.converted_link, claims.username)
    return {
        "converted_link": f"{settings.public_base_url}/{link.converted_link}",
        "short_code": link.converted_link,
        "lifespan": 0,
    }

# ---------- Admin ----------
@admin.get("/links", response_model=schemas.AdminLinks)
def list_links(db=Depends(database.get_db)):
    users = {
        f"user_{user_id}": schemas.OwnerLinks(
            username=entry["username"],
            list_of_converted_links=[schemas.LinkOut.model_validate(link) for link in entry["links"]],
        )
        for user_id, entry in crud.list_all(db).items()
    }
    return {"code": 200, "users": users}

@admin.put("/links/{link_id}", response_model=schemas.MessageOut)
def update_link(link_id: int, body: schemas.LinkUpdate, db=Depends(database.get_db),
                claims: auth.Claims = Depends(auth.require_admin)):
    link = crud.update_by_id(db, link_id, body.original_link, body.converted_link)
    logger.info("Updated link %s → %s (%s) by=%s", link.id, link.original_link, link.converted_link, claims.username)
    return {"message": "Link updated successfully"}

@admin.delete("/links/{link_id}", response_model=schemas.MessageOut)
def delete_link(link_id: int, db=Depends(database.get_db), claims: auth.Claims = Depends(auth.require_admin)):
    crud.delete_by_id(db, link_id)
    logger.info("Deleted link %s by=%s", link_id, claims.username)
    return {"message": "Link deleted successfully"}

# Pretty redirect /{code}
RESERVED = {"", "docs", "openapi.json", "redoc", "signup", "login", "convert",
            "admin", "favicon.ico", "health"}

@redirects.get("/{code}", include_in_schema=False)
def redirect_pretty(code: str, db=Depends(database.get_db)):
    if code in RESERVED or not re.fullmatch(r"[A-Za-z0-9_-]{2,64}", code):
        raise errors.NotFound("Not found")
    link = crud.get_by_code(db, code)
    if not link:
        raise errors.NotFound("Not found")
    return RedirectResponse(url=link.original_link, status_code=307)


# ---------- Error handling ----------
async def linkgate_error_handler(request: Request, exc: errors.LinkGateError):
    if exc.status_code >= 500:
        logger.error("%s on %s %s", type(exc).__name__, request.method, request.url.path, exc_info=exc)
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(status_code=int(exc.status_code), content={"error": exc.detail}, headers=headers)

async def validation_error_handler(request: Request, exc: RequestValidationError):
    fields = [".".join(str(part) for part in err["loc"][1:]) for err in exc.errors()]
    return JSONResponse(status_code=400, content={"error": "Invalid request body", "fields": fields})

async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"error": "Internal Server Error"})


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or load_settings()
    logging.getLogger().setLevel(settings.log_level)

    # --- DB tables ---
    engine = database.build_engine(settings)
    models.Base.metadata.create_all(bind=engine)

    app = FastAPI(
        title="linkgate",
        description="Shorten links behind accounts. Admins manage every mapping.",
        version="1.0.0",
    )
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = database.build_session_factory(engine)
    app.state.tokens = auth.TokenService(settings.secret_key, settings.algorithm)

    # --- CORS (allow frontend dev servers, etc.) ---
    origins = ["*"] if settings.environment == "dev" else [settings.public_base_url]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(errors.LinkGateError, linkgate_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(router)
    app.include_router(admin)
    # catch-all last so it never shadows a real route
    app.include_router(redirects)
    return app


def serve() -> None:
    settings = load_settings()
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)
