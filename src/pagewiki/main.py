"""PageWiki FastAPI application."""

import logging
import re
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import APIRouter, Depends, FastAPI, Form, HTTPException, Request
from fastapi.responses import HTMLResponse, PlainTextResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates

from pagewiki.config import settings
from pagewiki.core.exceptions import NoMatchingPagesError, StorageError
from pagewiki.core.models import Page
from pagewiki.core.parser import render_body
from pagewiki.core.service import PageService
from pagewiki.core.storage import PageStore, SqlPageStore

logging.basicConfig(level=settings.log_level)

logger = logging.getLogger(__name__)

VALID_TITLE = re.compile(r"^[a-zA-Z0-9]+$")

templates_path = Path(__file__).parent / "templates"
static_path = Path(__file__).parent / "static"

templates = Jinja2Templates(directory=str(templates_path))


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Connect to the database unless a store was injected."""
    owns_store = app.state.store is None
    if owns_store:
        store = SqlPageStore(
            settings.sqlalchemy_url,
            placeholder_body=settings.placeholder_body,
            echo=settings.debug,
        )
        store.ping()
        store.create_schema()
        logger.info(
            "Connected to %s",
            settings.sqlalchemy_url.render_as_string(hide_password=True),
        )
        app.state.store = store
    yield
    if owns_store:
        app.state.store.close()
        app.state.store = None


def storage_error_handler(request: Request, exc: StorageError):
    logger.exception("Unhandled storage error")
    return PlainTextResponse(str(exc), status_code=500)


def get_store(request: Request) -> PageStore:
    return request.app.state.store


def get_service(store: PageStore = Depends(get_store)) -> PageService:
    return PageService(store)


def valid_title(title: str) -> str:
    """Reject titles that are not plain alphanumerics with a 404."""
    if not VALID_TITLE.fullmatch(title):
        raise HTTPException(status_code=404, detail="Not Found")
    return title


def get_context(**kwargs) -> dict:
    """Create base context for templates."""
    return {
        "app_title": settings.app_title,
        **kwargs,
    }


router = APIRouter()


@router.get("/")
def index():
    return RedirectResponse(url=f"/view/{settings.front_page}", status_code=302)


@router.get("/view/{title}", response_class=HTMLResponse)
def view_page(
    request: Request,
    title: str = Depends(valid_title),
    service: PageService = Depends(get_service),
):
    """View a wiki page."""
    try:
        page = service.load(title)
    except StorageError:
        logger.exception("Could not load %r, sending to editor", title)
        return RedirectResponse(url=f"/edit/{title}", status_code=302)

    def page_exists(name: str) -> bool:
        return bool(service.store.find_by_title(name))

    return templates.TemplateResponse(
        request,
        "view.html",
        get_context(page=page, html_content=render_body(page.body, page_exists)),
    )


@router.get("/edit/{title}", response_class=HTMLResponse)
def edit_page(
    request: Request,
    title: str = Depends(valid_title),
    service: PageService = Depends(get_service),
):
    """Edit page form."""
    try:
        page = service.load(title)
    except StorageError:
        logger.exception("Could not load %r, editing a blank page", title)
        page = Page(title=title)

    return templates.TemplateResponse(request, "edit.html", get_context(page=page))


@router.post("/save/{title}")
def save_page(
    title: str = Depends(valid_title),
    body: str = Form(""),
    service: PageService = Depends(get_service),
):
    """Save page content."""
    try:
        service.save(title, body)
    except StorageError as exc:
        logger.exception("Could not save %r", title)
        return PlainTextResponse(str(exc), status_code=500)
    return RedirectResponse(url=f"/view/{title}", status_code=302)


@router.get("/search/{title}", response_class=HTMLResponse)
def search_page(
    request: Request,
    title: str = Depends(valid_title),
    store: PageStore = Depends(get_store),
):
    """Search form, prefilled with the current page when it exists."""
    try:
        pages = store.find_by_title(title)
    except StorageError:
        logger.exception("Could not look up %r for the search form", title)
        pages = []
    page = pages[0] if pages else Page(title=title)
    return templates.TemplateResponse(request, "search.html", get_context(page=page))


@router.post("/searched/{title}")
def searched(
    title: str = Depends(valid_title),
    body1: str = Form(""),
    body2: str = Form(""),
    store: PageStore = Depends(get_store),
):
    """Run a title or body search and jump to the first match.

    A non-empty title query wins; otherwise the body fragment is used.
    """
    if body1:
        pages = store.find_by_title(body1)
    else:
        try:
            pages = store.find_by_body_substring(body2)
        except NoMatchingPagesError:
            pages = []

    if not pages:
        raise HTTPException(status_code=404, detail="No matching page")

    page = store.find_by_id(pages[0].id)
    return RedirectResponse(url=f"/view/{page.title}", status_code=302)


def create_app(store: PageStore | None = None) -> FastAPI:
    """Build the application.

    When store is None the lifespan connects using the configured
    database settings.
    """
    app = FastAPI(
        title=settings.app_title,
        debug=settings.debug,
        lifespan=lifespan,
    )
    app.state.store = store
    app.mount("/static", StaticFiles(directory=str(static_path)), name="static")
    app.include_router(router)
    app.exception_handler(StorageError)(storage_error_handler)
    return app


app = create_app()
