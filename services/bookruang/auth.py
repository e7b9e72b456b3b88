# ============================================================
# auth.py — Connexion / inscription auprès du service
# ------------------------------------------------------------
#   - POST /api/auth/login    → jeton + rôle + identité
#   - POST /api/auth/register → création de compte
# Le jeton reçu devient une UserSession ; c'est la seule chose
# que l'UI garde entre deux requêtes.
# ============================================================
import httpx

from errors import ServerRejection, TransportFailure, ValidationError
from models import UserSession
from repository import decode, send

AUTH_PATH = "/api/auth"


def validate_registration(full_name: str, username: str, email: str, password: str, confirm_password: str):
    if not full_name.strip() or not email.strip():
        raise ValidationError("tous les champs sont obligatoires")
    if password != confirm_password:
        raise ValidationError("les mots de passe ne correspondent pas")
    if len(password) < 6:
        raise ValidationError("le mot de passe doit contenir au moins 6 caractères")
    if len(username) < 3:
        raise ValidationError("le nom d'utilisateur doit contenir au moins 3 caractères")


class AuthRepository:
    def __init__(self, http: httpx.Client):
        self.http = http

    def login(self, username_or_email: str, password: str) -> UserSession:
        if not username_or_email.strip() or not password:
            raise ValidationError("identifiant et mot de passe obligatoires")
        r = send(self.http, "POST", f"{AUTH_PATH}/login",
                 json={"usernameOrEmail": username_or_email, "password": password},
                 fallback="identifiants invalides", auth=False)
        data = decode(r)
        if not isinstance(data, dict) or not data.get("token"):
            raise ServerRejection("identifiants invalides", r.status_code)
        session = UserSession.from_login(data)
        print(f"[auth] login ok user={session.username or username_or_email} role={session.role}", flush=True)
        return session

    def register(self, full_name: str, username: str, email: str, password: str, confirm_password: str):
        validate_registration(full_name, username, email, password, confirm_password)
        try:
            send(self.http, "POST", f"{AUTH_PATH}/register",
                 json={"fullName": full_name, "username": username, "email": email, "password": password},
                 fallback="inscription refusée : email ou nom d'utilisateur déjà pris", auth=False)
        except TransportFailure:
            print(f"[auth] register failed for {username}", flush=True)
            raise
        print(f"[auth] register ok user={username}", flush=True)
