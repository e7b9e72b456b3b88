# ============================================================
# app.py — Point d’entrée du client BookRuang
# ------------------------------------------------------------
# Ce module initialise l’application FastAPI :
#   - Affiche au démarrage le service REST visé
#   - Monte l’interface web (UI) sous /ui, session signée
#   - Expose /health pour l’orchestrateur
# ============================================================
from fastapi import FastAPI
from fastapi.responses import RedirectResponse
from starlette.middleware.sessions import SessionMiddleware

from repository import API_URL, HTTP_TIMEOUT
from ui import COOKIE_NAME, SECRET_KEY, router as ui_router

app = FastAPI(title="BookRuang")
# cookie de session signé (itsdangerous), lu via request.session
app.add_middleware(SessionMiddleware, secret_key=SECRET_KEY, session_cookie=COOKIE_NAME, same_site="lax")


@app.on_event("startup")
def start():
    print(f"[app] RoomLoans service at {API_URL} (timeout {HTTP_TIMEOUT}s)", flush=True)


@app.get("/health")
def health():
    return {"ok": True}


@app.get("/", include_in_schema=False)
def root():
    return RedirectResponse("/ui", status_code=307)


app.include_router(ui_router)
