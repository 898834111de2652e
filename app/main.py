# app/main.py

import os

from fastapi import Depends, FastAPI, Form, Request
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from starlette.middleware.sessions import SessionMiddleware
from starlette.responses import RedirectResponse

from . import auth
from .auth import get_backend, get_current_user
from .backend import ExpenseBackend
from .config import AUTH_ROUTE, SECRET_KEY, SESSION_MAX_AGE, configure_logging
from .dashboard import DashboardStore, DashboardView
from .database import engine
from .models import Base

configure_logging()

# Create tables if not already created
Base.metadata.create_all(bind=engine)

app = FastAPI(title="Expense.")

app.add_middleware(SessionMiddleware, secret_key=SECRET_KEY, max_age=SESSION_MAX_AGE)

# Mount static files (CSS)
app.mount("/static", StaticFiles(directory=os.path.join(os.path.dirname(__file__), "static")), name="static")

templates = Jinja2Templates(directory=os.path.join(os.path.dirname(__file__), "templates"))

# One dashboard view per browser session
app.state.dashboards = DashboardStore()

# Include auth routes (auth page/login/register/logout)
app.include_router(auth.router)


def render_dashboard(request: Request, view: DashboardView, user):
    return templates.TemplateResponse(
        request,
        "dashboard.html",
        {
            "user": user,
            "labels": view.weekly.labels,
            "values": view.weekly.values,
            "total_expense": view.total_expense,
            "today_expenses": view.today_expenses,
            "title": view.title,
            "amount": view.amount,
            "notifications": view.pop_notifications(),
        },
    )


@app.get("/")
async def dashboard(
    request: Request,
    user=Depends(get_current_user),
    backend: ExpenseBackend = Depends(get_backend),
):
    if not user:
        return RedirectResponse(AUTH_ROUTE)

    view = request.app.state.dashboards.get(request.session, backend)
    await view.show(user)
    return render_dashboard(request, view, user)


# Add expense from the dashboard form
@app.post("/expenses")
async def add_expense(
    request: Request,
    title: str = Form(""),
    amount: str = Form(""),
    user=Depends(get_current_user),
    backend: ExpenseBackend = Depends(get_backend),
):
    if not user:
        return auth.auth_page(request, "User not found")

    view = request.app.state.dashboards.get(request.session, backend)
    await view.add_expense(user, title.strip(), amount.strip())

    # the dashboard skips its next load when add_expense already refreshed it
    return RedirectResponse("/", status_code=303)
