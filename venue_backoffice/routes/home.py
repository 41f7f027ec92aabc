# venue_backoffice/routes/home.py
from fastapi import APIRouter, Request, Depends
from fastapi.responses import HTMLResponse, RedirectResponse

from venue_backoffice.routes.templating import templates
from venue_backoffice.services.access import LOGIN_PATH
from venue_backoffice.utils.auth import get_admin_user, get_database, get_manager_user

router = APIRouter()


@router.get("/", response_class=RedirectResponse)
async def redirect_root():
    # The session middleware answers "/" for every actor; only reached without it
    return RedirectResponse(LOGIN_PATH, status_code=303)


@router.get("/admin", response_class=RedirectResponse)
async def admin_home():
    return RedirectResponse("/admin/dashboard", status_code=303)


@router.get("/admin/dashboard", response_class=HTMLResponse)
async def admin_dashboard(request: Request, current_profile=Depends(get_admin_user), db=Depends(get_database)):
    summary = db.get_admin_summary()
    return templates.TemplateResponse(
        request,
        "admin/dashboard.html",
        {"user": current_profile, "summary": summary, "venues": db.get_venues()},
    )


@router.get("/manager", response_class=RedirectResponse)
async def manager_home():
    return RedirectResponse("/manager/dashboard", status_code=303)


@router.get("/manager/dashboard", response_class=HTMLResponse)
async def manager_dashboard(request: Request, current_profile=Depends(get_manager_user), db=Depends(get_database)):
    venue = db.get_venue(current_profile.venue_id)
    summary = db.get_manager_summary(current_profile.venue_id)
    return templates.TemplateResponse(
        request,
        "manager/dashboard.html",
        {"user": current_profile, "venue": venue, "summary": summary},
    )


@router.get("/menu-placeholder", response_class=HTMLResponse)
async def menu_placeholder(request: Request):
    return templates.TemplateResponse(request, "menu_placeholder.html", {})
