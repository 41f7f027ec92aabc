from fastapi import APIRouter, Depends, Request, Form
from fastapi.responses import HTMLResponse, RedirectResponse
import logging

from venue_backoffice.routes.templating import templates
from venue_backoffice.services.access import Layout
from venue_backoffice.utils.auth import get_backend
from venue_backoffice.utils.cookies import clear_auth_cookies, set_auth_cookies

router = APIRouter(tags=["authentication"])


@router.get("/login", response_class=HTMLResponse)
async def login_page(request: Request):
    decision = getattr(request.state, "access_decision", None)
    if decision is not None and decision.layout == Layout.FALLBACK:
        return templates.TemplateResponse(request, "login.html", {"fallback": True})
    return templates.TemplateResponse(request, "login.html", {"fallback": False})


@router.post("/login")
async def login_form(
    request: Request,
    email: str = Form(...),
    password: str = Form(...),
    remember_me: bool = Form(False),
    backend=Depends(get_backend),
):
    try:
        tokens = backend.sign_in(email, password)
    except Exception as e:
        logging.error(f"Login failed for {email}: {e}")
        return templates.TemplateResponse(
            request,
            "login.html",
            {"fallback": False, "error": "Login failed. Please check your credentials."},
            status_code=401
        )

    # The gate at "/" sends each role to its home
    redirect_response = RedirectResponse(url="/", status_code=303)
    set_auth_cookies(redirect_response, tokens, remember_me)
    logging.info(f"User {email} logged in successfully")
    return redirect_response


@router.get("/logout")
async def logout(request: Request, backend=Depends(get_backend)):
    try:
        backend.sign_out()
    except Exception as e:
        logging.warning(f"Logout error: {e}")

    response = RedirectResponse(url="/login", status_code=303)
    clear_auth_cookies(response)
    return response
