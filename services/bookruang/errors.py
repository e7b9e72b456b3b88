# ============================================================
# errors.py — Erreurs côté client BookRuang
# ------------------------------------------------------------
#   - ValidationError  : saisie refusée avant tout appel réseau
#   - AuthError        : 401 du service, la session est fermée
#   - ServerRejection  : réponse non-2xx, message du serveur tel quel
#   - TransportFailure : réseau coupé, timeout, JSON illisible
# Aucune n'est rejouée automatiquement.
# ============================================================
from typing import Optional


class BookRuangError(Exception):
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(BookRuangError):
    pass


class AuthError(BookRuangError):
    def __init__(self, message: str = "session expirée, veuillez vous reconnecter"):
        super().__init__(message)


class ServerRejection(BookRuangError):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class TransportFailure(BookRuangError):
    pass
