# ============================================================
# models.py — Modèles de données SQLModel (BookRuang)
# ------------------------------------------------------------
# Aucune table ici : le service REST distant possède la base.
# Ces modèles décrivent ce qui circule sur le fil :
#   1️. LoanRecord : une demande de prêt de salle
#   2️. Statistics : compteurs calculés côté serveur
#   3️. UserSession : jeton + rôle + identité de l'utilisateur
#   4️. Decision : corps des appels approve / reject
# Le fil parle camelCase, Python parle snake_case.
# ============================================================
from sqlmodel import SQLModel, Field
from typing import Optional


PENDING = "Pending"
APPROVED = "Approved"
REJECTED = "Rejected"
CANCELLED = "Cancelled"
STATUSES = (PENDING, APPROVED, REJECTED, CANCELLED)

ADMIN = "Admin"
USER = "User"


# attribut Python -> clé JSON du service
LOAN_WIRE_FIELDS = {
    "id": "id",
    "borrower_name": "borrowerName",
    "room_name": "roomName",
    "purpose": "purpose",
    "date": "date",
    "status": "status",
    "start_time": "startTime",
    "end_time": "endTime",
    "approved_by": "approvedBy",
    "approved_at": "approvedAt",
    "rejected_by": "rejectedBy",
    "rejected_at": "rejectedAt",
    "notes": "notes",
}


# ------------------------------------------------------------
# LoanRecord
# ------------------------------------------------------------
# Cycle de vie : Pending → Approved | Rejected (Cancelled possible)
#  - id absent tant que le brouillon n'est pas enregistré
#  - start_time / end_time : texte ISO-8601 tel que reçu
#  - champs d'audit remplis uniquement après une décision
# ------------------------------------------------------------
class LoanRecord(SQLModel):
    id: Optional[int] = None
    borrower_name: str = ""
    room_name: str = ""
    purpose: str = ""
    date: str = ""
    status: str = PENDING
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    approved_by: Optional[str] = None
    approved_at: Optional[str] = None
    rejected_by: Optional[str] = None
    rejected_at: Optional[str] = None
    notes: Optional[str] = None

    @classmethod
    def from_api(cls, data: dict) -> "LoanRecord":
        values = {}
        for attr, key in LOAN_WIRE_FIELDS.items():
            if data.get(key) is not None:
                values[attr] = data[key]
        return cls(**values)

    def to_api(self, include_id: bool = False, only=None) -> dict:
        # only : restreint le corps aux attributs nommés (PUT partiel)
        payload = {}
        for attr, key in LOAN_WIRE_FIELDS.items():
            if attr == "id" and not include_id:
                continue
            if only is not None and attr != "id" and attr not in only:
                continue
            value = getattr(self, attr)
            # les heures vides d'un formulaire ne partent pas sur le fil
            if attr in ("start_time", "end_time") and not value:
                value = None
            payload[key] = value
        return payload

    @property
    def is_pending(self) -> bool:
        return self.status == PENDING


class Statistics(SQLModel):
    total: int = Field(default=0, ge=0)
    pending: int = Field(default=0, ge=0)
    approved: int = Field(default=0, ge=0)
    rejected: int = Field(default=0, ge=0)

    @classmethod
    def from_api(cls, data: dict) -> "Statistics":
        return cls(
            total=data.get("total", 0),
            pending=data.get("pending", 0),
            approved=data.get("approved", 0),
            rejected=data.get("rejected", 0),
        )


class Decision(SQLModel):
    updated_by: str
    notes: str = ""

    def to_api(self) -> dict:
        return {"updatedBy": self.updated_by, "notes": self.notes}


# ------------------------------------------------------------
# UserSession
# ------------------------------------------------------------
# Construite à partir de la réponse de /api/auth/login.
# Transmise explicitement aux repositories et au synchronizer,
# jamais stockée dans une variable globale.
# ------------------------------------------------------------
class UserSession(SQLModel):
    token: Optional[str] = None
    role: str = USER
    username: str = ""
    email: str = ""
    full_name: str = ""

    @classmethod
    def from_login(cls, data: dict) -> "UserSession":
        return cls(
            token=data.get("token"),
            role=data.get("role") or USER,
            username=data.get("username") or "",
            email=data.get("email") or "",
            full_name=data.get("fullName") or "",
        )

    def to_login(self) -> dict:
        return {
            "token": self.token,
            "role": self.role,
            "username": self.username,
            "email": self.email,
            "fullName": self.full_name,
        }

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN

    @property
    def identity(self) -> str:
        return self.full_name

    def auth_header(self) -> dict:
        return {"Authorization": f"Bearer {self.token}"} if self.token else {}

    def clear(self):
        self.token = None
        self.role = USER
        self.username = ""
        self.email = ""
        self.full_name = ""
