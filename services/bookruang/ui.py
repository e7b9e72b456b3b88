# ============================================================
# ui.py — Interface web (FastAPI + Jinja2)
# ------------------------------------------------------------
# Tableau de bord des prêts de salles :
#  - connexion / inscription / déconnexion
#  - statistiques, formulaire, filtres, liste
#  - détail, édition, suppression (avec confirmation)
#  - approbation / refus (admin)
#
# Chaque requête construit un LoanViewSynchronizer avec la
# session signée lue dans le cookie, exécute l'action puis réaffiche
# la vue fraîchement relue depuis le service.
# ============================================================

import os
from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo

import httpx
from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from auth import AuthRepository
from errors import AuthError, ServerRejection, TransportFailure, ValidationError
from models import STATUSES, LoanRecord, UserSession
from repository import RoomLoanRepository, make_http_client
from synchronizer import LoanViewSynchronizer

LOCAL_TZ = ZoneInfo(os.getenv("LOCAL_TZ", "Asia/Jakarta"))
COOKIE_NAME = os.getenv("BOOKRUANG_COOKIE", "bookruang_user")
SECRET_KEY = os.getenv("BOOKRUANG_SECRET_KEY", "change-me-in-production")
TEMPLATES_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "templates")


def to_local(value: Optional[str]) -> str:
    if not value:
        return "-"
    try:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return value
    # une heure naïve est déjà locale (saisie datetime-local)
    if dt.tzinfo is not None:
        dt = dt.astimezone(LOCAL_TZ)
    return dt.strftime("%d %b %Y %H:%M")


def to_input(value: Optional[str]) -> str:
    # format attendu par <input type="datetime-local">
    return value[:16] if value else ""


STATUS_COLORS = {
    "Pending": "#FFA726",
    "Approved": "#66BB6A",
    "Rejected": "#EF5350",
    "Cancelled": "#9E9E9E",
}

router = APIRouter()
templates = Jinja2Templates(directory=TEMPLATES_DIR)
templates.env.filters["to_local"] = to_local
templates.env.filters["to_input"] = to_input
templates.env.globals["status_colors"] = STATUS_COLORS


# Client httpx par requête, fermé automatiquement
def get_http():
    with make_http_client() as http:
        yield http


# ------------------------------------------------------------
# Session signée (SessionMiddleware), le seul état persistant
# ------------------------------------------------------------
def load_session(request: Request) -> Optional[UserSession]:
    data = request.session.get("user")
    if not isinstance(data, dict):
        return None
    session = UserSession.from_login(data)
    return session if session.is_authenticated else None


def store_session(request: Request, session: UserSession):
    request.session["user"] = session.to_login()


def login_redirect(request: Request):
    request.session.clear()
    return RedirectResponse("/ui/login", status_code=303)


def open_view(request: Request, http: httpx.Client) -> Optional[LoanViewSynchronizer]:
    session = load_session(request)
    if session is None:
        return None
    return LoanViewSynchronizer(session, RoomLoanRepository(http, session))


def blank_form(session: UserSession) -> LoanRecord:
    return LoanRecord(borrower_name=session.identity)


# ------------------------------------------------------------
# Rendu du tableau de bord
# ------------------------------------------------------------
# Relit la vue si elle est "stale". Une panne réseau ne vide
# pas la page : on affiche un bandeau avec un lien "réessayer".
# ------------------------------------------------------------
def dashboard(request: Request, sync: LoanViewSynchronizer, message: Optional[str] = None,
              error: Optional[str] = None, form: Optional[LoanRecord] = None,
              editing_id: Optional[int] = None, status_code: int = 200, reload: bool = True,
              transport_error: Optional[str] = None):
    if reload and not sync.fresh:
        try:
            sync.refresh()
        except AuthError:
            return login_redirect(request)
        except TransportFailure as e:
            transport_error = e.message
            if status_code == 200:
                status_code = 502

    return templates.TemplateResponse(request, "index.html", {
        "sync": sync,
        "session": sync.session,
        "features": sync.features,
        "stats": sync.stats,
        "rows": sync.visible_loans,
        "statuses": STATUSES,
        "form": form or blank_form(sync.session),
        "editing_id": editing_id,
        "approver": sync.session.identity,
        "message": message,
        "error": error,
        "transport_error": transport_error,
    }, status_code=status_code)


def perform(request: Request, sync: LoanViewSynchronizer, action, success: str,
            form: Optional[LoanRecord] = None, editing_id: Optional[int] = None):
    try:
        outcome = action()
    except AuthError:
        return login_redirect(request)
    except (ValidationError, ServerRejection) as e:
        print(f"[ui] action refused: {e.message}", flush=True)
        return dashboard(request, sync, error=e.message, form=form, editing_id=editing_id, status_code=400)
    except TransportFailure as e:
        return dashboard(request, sync, form=form, editing_id=editing_id, status_code=502,
                         reload=False, transport_error=e.message)
    if outcome is False:
        return dashboard(request, sync, message="Suppression annulée.")
    return dashboard(request, sync, message=success)


def find_loan(request: Request, sync: LoanViewSynchronizer, loan_id: int):
    """Relit la vue et renvoie (prêt, None) ou (None, réponse à renvoyer)."""
    try:
        sync.refresh()
    except AuthError:
        return None, login_redirect(request)
    except TransportFailure as e:
        return None, dashboard(request, sync, status_code=502, reload=False, transport_error=e.message)
    loan = sync.get(loan_id)
    if loan is None:
        return None, dashboard(request, sync, error="Prêt introuvable.", status_code=404)
    return loan, None


# ------------------------------------------------------------
# Connexion / inscription / déconnexion
# ------------------------------------------------------------
@router.get("/ui/login", response_class=HTMLResponse)
def ui_login_form(request: Request, registered: bool = False):
    message = "Inscription réussie, vous pouvez vous connecter." if registered else None
    return templates.TemplateResponse(request, "login.html", {"message": message, "error": None, "login": ""})


@router.post("/ui/login", response_class=HTMLResponse)
def ui_login(request: Request, login: str = Form(""), password: str = Form(""),
             http: httpx.Client = Depends(get_http)):
    try:
        session = AuthRepository(http).login(login, password)
    except (ValidationError, ServerRejection, TransportFailure) as e:
        print(f"[ui] login refused for {login}: {e.message}", flush=True)
        code = 502 if isinstance(e, TransportFailure) else 400
        return templates.TemplateResponse(request, "login.html",
                                          {"message": None, "error": e.message, "login": login},
                                          status_code=code)
    r = RedirectResponse("/ui", status_code=303)
    store_session(request, session)
    return r


@router.get("/ui/register", response_class=HTMLResponse)
def ui_register_form(request: Request):
    return templates.TemplateResponse(request, "register.html", {"error": None, "values": {}})


@router.post("/ui/register", response_class=HTMLResponse)
def ui_register(request: Request, full_name: str = Form(""), username: str = Form(""),
                email: str = Form(""), password: str = Form(""), confirm_password: str = Form(""),
                http: httpx.Client = Depends(get_http)):
    try:
        AuthRepository(http).register(full_name, username, email, password, confirm_password)
    except (ValidationError, ServerRejection, TransportFailure) as e:
        values = {"full_name": full_name, "username": username, "email": email}
        code = 502 if isinstance(e, TransportFailure) else 400
        return templates.TemplateResponse(request, "register.html",
                                          {"error": e.message, "values": values}, status_code=code)
    return RedirectResponse("/ui/login?registered=true", status_code=303)


@router.post("/ui/logout")
def ui_logout(request: Request):
    return login_redirect(request)


# ------------------------------------------------------------
# Tableau de bord
# ------------------------------------------------------------
@router.get("/ui", response_class=HTMLResponse)
def ui_home(request: Request, status: str = "", room: str = "", borrower: str = "",
            http: httpx.Client = Depends(get_http)):
    sync = open_view(request, http)
    if sync is None:
        return login_redirect(request)
    sync.set_filters(status, room, borrower)
    return dashboard(request, sync)


@router.get("/ui/loans/{loan_id}", response_class=HTMLResponse)
def ui_detail(request: Request, loan_id: int, http: httpx.Client = Depends(get_http)):
    sync = open_view(request, http)
    if sync is None:
        return login_redirect(request)
    loan, response = find_loan(request, sync, loan_id)
    if response is not None:
        return response
    return templates.TemplateResponse(request, "detail.html", {"loan": loan, "session": sync.session})


@router.get("/ui/loans/{loan_id}/edit", response_class=HTMLResponse)
def ui_edit(request: Request, loan_id: int, http: httpx.Client = Depends(get_http)):
    sync = open_view(request, http)
    if sync is None:
        return login_redirect(request)
    loan, response = find_loan(request, sync, loan_id)
    if response is not None:
        return response
    if not sync.features.can_edit(loan):
        return dashboard(request, sync, error="Ce prêt ne peut plus être modifié.", status_code=403)
    return dashboard(request, sync, form=loan, editing_id=loan_id)


# Création / mise à jour depuis le formulaire
# Les champs f_* recopient les filtres en cours pour réafficher la même vue.
@router.post("/ui/loans", response_class=HTMLResponse)
def ui_create(
    request: Request,
    borrower_name: str = Form(""),
    room_name: str = Form(""),
    purpose: str = Form(""),
    date: str = Form(""),
    start_time: str = Form(""),
    end_time: str = Form(""),
    f_status: str = Form(""),
    f_room: str = Form(""),
    f_borrower: str = Form(""),
    http: httpx.Client = Depends(get_http),
):
    sync = open_view(request, http)
    if sync is None:
        return login_redirect(request)
    sync.set_filters(f_status, f_room, f_borrower)
    draft = LoanRecord(borrower_name=borrower_name, room_name=room_name, purpose=purpose, date=date,
                       start_time=start_time or None, end_time=end_time or None)
    return perform(request, sync, lambda: sync.create(draft), "Prêt ajouté !", form=draft)


@router.post("/ui/loans/{loan_id}", response_class=HTMLResponse)
def ui_update(
    request: Request,
    loan_id: int,
    borrower_name: str = Form(""),
    room_name: str = Form(""),
    purpose: str = Form(""),
    date: str = Form(""),
    start_time: str = Form(""),
    end_time: str = Form(""),
    f_status: str = Form(""),
    f_room: str = Form(""),
    f_borrower: str = Form(""),
    http: httpx.Client = Depends(get_http),
):
    sync = open_view(request, http)
    if sync is None:
        return login_redirect(request)
    sync.set_filters(f_status, f_room, f_borrower)
    loan, response = find_loan(request, sync, loan_id)
    if response is not None:
        return response
    if not sync.features.can_edit(loan):
        return dashboard(request, sync, error="Ce prêt ne peut plus être modifié.", status_code=403)
    draft = LoanRecord(id=loan_id, borrower_name=borrower_name, room_name=room_name, purpose=purpose,
                       date=date, start_time=start_time or None, end_time=end_time or None)
    return perform(request, sync, lambda: sync.update(loan_id, draft), "Prêt mis à jour !",
                   form=draft, editing_id=loan_id)


@router.get("/ui/loans/{loan_id}/delete", response_class=HTMLResponse)
def ui_delete_confirm(request: Request, loan_id: int, http: httpx.Client = Depends(get_http)):
    sync = open_view(request, http)
    if sync is None:
        return login_redirect(request)
    loan, response = find_loan(request, sync, loan_id)
    if response is not None:
        return response
    return templates.TemplateResponse(request, "delete.html", {"loan": loan, "session": sync.session})


@router.post("/ui/loans/{loan_id}/delete", response_class=HTMLResponse)
def ui_delete(request: Request, loan_id: int, confirm: str = Form(""), http: httpx.Client = Depends(get_http)):
    sync = open_view(request, http)
    if sync is None:
        return login_redirect(request)
    return perform(request, sync, lambda: sync.remove(loan_id, lambda _prompt: confirm == "yes"), "Prêt supprimé !")


@router.post("/ui/loans/{loan_id}/approve", response_class=HTMLResponse)
def ui_approve(request: Request, loan_id: int, approver_name: str = Form(""), notes: str = Form(""),
               http: httpx.Client = Depends(get_http)):
    sync = open_view(request, http)
    if sync is None:
        return login_redirect(request)
    return perform(request, sync, lambda: sync.approve(loan_id, approver_name, notes), "Prêt approuvé !")


@router.post("/ui/loans/{loan_id}/reject", response_class=HTMLResponse)
def ui_reject(request: Request, loan_id: int, approver_name: str = Form(""), notes: str = Form(""),
              http: httpx.Client = Depends(get_http)):
    sync = open_view(request, http)
    if sync is None:
        return login_redirect(request)
    return perform(request, sync, lambda: sync.reject(loan_id, approver_name, notes), "Prêt refusé !")
