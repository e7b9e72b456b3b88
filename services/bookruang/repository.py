# ============================================================
# repository.py — Accès au service RoomLoans (HTTP)
# ------------------------------------------------------------
# Même rôle qu'un "Repository" classique, mais la table vit
# derrière le service REST distant : chaque méthode est un seul
# appel httpx. Le jeton de la session part dans l'en-tête
# Authorization de chaque appel.
# ============================================================
import os
from typing import List, Optional

import httpx

from errors import AuthError, ServerRejection, TransportFailure
from models import Decision, LoanRecord, Statistics, UserSession

API_URL = os.getenv("BOOKRUANG_API_URL", "http://localhost:5021")
HTTP_TIMEOUT = float(os.getenv("BOOKRUANG_HTTP_TIMEOUT", "10"))
LOANS_PATH = "/api/RoomLoans"


def make_http_client() -> httpx.Client:
    return httpx.Client(base_url=API_URL, timeout=HTTP_TIMEOUT)


def server_message(r: httpx.Response, fallback: str) -> str:
    # le service renvoie {"message": ...} ; sinon on garde le texte brut
    try:
        body = r.json()
    except ValueError:
        return r.text.strip() or fallback
    if isinstance(body, dict):
        return body.get("message") or body.get("title") or fallback
    if isinstance(body, str) and body:
        return body
    return fallback


def send(http: httpx.Client, method: str, path: str, session: Optional[UserSession] = None,
         json=None, fallback: str = "requête refusée", auth: bool = True) -> httpx.Response:
    headers = session.auth_header() if session else {}
    try:
        r = http.request(method, path, json=json, headers=headers)
    except httpx.HTTPError as e:
        print(f"[repository] {method} {path} transport error: {e}", flush=True)
        raise TransportFailure(f"service injoignable ({e.__class__.__name__})")

    print(f"[repository] {method} {path} -> {r.status_code}", flush=True)
    # 401 sur une route protégée = session expirée ; au login ce n'est qu'un refus
    if r.status_code == 401 and auth:
        raise AuthError()
    if not r.is_success:
        raise ServerRejection(server_message(r, fallback), r.status_code)
    return r


def decode(r: httpx.Response):
    try:
        return r.json()
    except ValueError:
        print(f"[repository] undecodable body: {r.text[:80]!r}", flush=True)
        raise TransportFailure("réponse illisible du service")


# RoomLoanRepository
# Lecture (liste, statistiques) et écritures (create / update / delete /
# approve / reject). Aucun état local : c'est le rôle du synchronizer.
class RoomLoanRepository:
    def __init__(self, http: httpx.Client, session: UserSession):
        self.http = http
        self.session = session

    def list_all(self) -> List[LoanRecord]:
        data = decode(send(self.http, "GET", LOANS_PATH, self.session))
        if not isinstance(data, list):
            raise TransportFailure("liste de prêts attendue")
        try:
            return [LoanRecord.from_api(item) for item in data]
        except (ValueError, TypeError, AttributeError) as e:
            raise TransportFailure(f"prêt illisible: {e}")

    def statistics(self) -> Statistics:
        data = decode(send(self.http, "GET", f"{LOANS_PATH}/statistics", self.session))
        try:
            return Statistics.from_api(data)
        except (ValueError, TypeError, AttributeError) as e:
            raise TransportFailure(f"statistiques illisibles: {e}")

    def create(self, draft: LoanRecord) -> Optional[LoanRecord]:
        r = send(self.http, "POST", LOANS_PATH, self.session,
                 json=draft.to_api(), fallback="échec de l'enregistrement")
        return self._record_or_none(r)

    def update(self, loan_id: int, draft: LoanRecord, only=None) -> Optional[LoanRecord]:
        payload = draft.to_api(include_id=True, only=only)
        payload["id"] = loan_id
        r = send(self.http, "PUT", f"{LOANS_PATH}/{loan_id}", self.session,
                 json=payload, fallback="échec de la mise à jour")
        return self._record_or_none(r)

    def delete(self, loan_id: int):
        send(self.http, "DELETE", f"{LOANS_PATH}/{loan_id}", self.session,
             fallback="échec de la suppression")

    def approve(self, loan_id: int, decision: Decision):
        send(self.http, "PUT", f"{LOANS_PATH}/{loan_id}/approve", self.session,
             json=decision.to_api(), fallback="échec de l'approbation")

    def reject(self, loan_id: int, decision: Decision):
        send(self.http, "PUT", f"{LOANS_PATH}/{loan_id}/reject", self.session,
             json=decision.to_api(), fallback="échec du refus")

    # create / update renvoient parfois 204 sans corps
    def _record_or_none(self, r: httpx.Response) -> Optional[LoanRecord]:
        if not r.content:
            return None
        data = decode(r)
        if not isinstance(data, dict):
            return None
        try:
            return LoanRecord.from_api(data)
        except (ValueError, TypeError, AttributeError) as e:
            raise TransportFailure(f"prêt illisible: {e}")
