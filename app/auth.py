# app/auth.py

import logging
import os
import re
from typing import Optional

from fastapi import APIRouter, Depends, Form, Request
from fastapi.templating import Jinja2Templates
from starlette.responses import RedirectResponse

from .backend import AuthError, BackendError, ExpenseBackend
from .config import AUTH_ROUTE

logger = logging.getLogger(__name__)

templates = Jinja2Templates(directory=os.path.join(os.path.dirname(__file__), "templates"))

router = APIRouter()


# Dependency to get the backend client
def get_backend():
    return ExpenseBackend()


def get_current_user(request: Request, backend: ExpenseBackend = Depends(get_backend)):
    try:
        return backend.get_user(request.session)
    except BackendError:
        logger.warning("User lookup failed, treating request as signed out")
        return None


def is_valid_email(email: str) -> bool:
    pattern = r"^[\w\.+-]+@[\w-]+(\.[\w-]+)+$"
    return re.match(pattern, email) is not None


def auth_page(request: Request, error: Optional[str] = None, email: str = ""):
    return templates.TemplateResponse(
        request, "auth.html", {"error": error, "email": email, "auth_route": AUTH_ROUTE}
    )


@router.get(AUTH_ROUTE)
def auth_form(request: Request):
    return auth_page(request)


# Sign in
@router.post(AUTH_ROUTE + "/login")
def login(
    request: Request,
    email: str = Form(...),
    password: str = Form(...),
    backend: ExpenseBackend = Depends(get_backend),
):
    # a new sign-in never inherits another account's dashboard
    request.app.state.dashboards.discard(request.session)
    try:
        backend.sign_in(request.session, email, password)
    except AuthError as exc:
        return auth_page(request, str(exc), email)
    except BackendError:
        return auth_page(request, "Sign in is unavailable, try again.", email)
    return RedirectResponse("/", status_code=302)


# Register (Signup)
@router.post(AUTH_ROUTE + "/register")
def register(
    request: Request,
    email: str = Form(...),
    password: str = Form(...),
    backend: ExpenseBackend = Depends(get_backend),
):
    if not is_valid_email(email):
        return auth_page(request, "Invalid email format (e.g. name@gmail.com).", email)

    request.app.state.dashboards.discard(request.session)
    try:
        backend.sign_up(email, password)
        backend.sign_in(request.session, email, password)
    except AuthError as exc:
        return auth_page(request, str(exc), email)
    except BackendError:
        return auth_page(request, "Sign up is unavailable, try again.", email)
    return RedirectResponse("/", status_code=302)


# Logout
@router.get("/logout")
def logout(request: Request, backend: ExpenseBackend = Depends(get_backend)):
    request.app.state.dashboards.discard(request.session)
    backend.sign_out(request.session)
    return RedirectResponse(AUTH_ROUTE, status_code=302)
