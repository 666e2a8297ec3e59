from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse

from gatehouse.api.deps import get_current_user_optional, require_user
from gatehouse.api.templating import render
from gatehouse.db.models import User

router = APIRouter(tags=["pages"])


@router.get("/", response_class=HTMLResponse)
def index(request: Request, user: Optional[User] = Depends(get_current_user_optional)):
    return render(request, "index.html", {"title": "Home"})


@router.get("/dashboard", response_class=HTMLResponse)
def dashboard(request: Request, user: User = Depends(require_user)):
    return render(request, "dashboard.html", {"title": "Dashboard", "user": user})
