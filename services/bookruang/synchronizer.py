# ============================================================
# synchronizer.py — Vue locale des prêts, alignée sur le serveur
# ------------------------------------------------------------
# Le LoanViewSynchronizer garde :
#   - all_loans     : copie complète renvoyée par le service
#   - visible_loans : all_loans filtrée (statut, salle, emprunteur, rôle)
#   - stats         : compteurs calculés côté serveur, jamais ici
# Après chaque écriture réussie la vue redevient "stale" et on
# relit la liste + les statistiques (un appel chacun).
# ============================================================
from datetime import datetime
from typing import Callable, List, Optional

from errors import AuthError, TransportFailure, ValidationError
from models import Decision, LoanRecord, Statistics, UserSession
from repository import RoomLoanRepository

DELETE_PROMPT = "Voulez-vous vraiment supprimer ce prêt ?"
EDITABLE_FIELDS = ("borrower_name", "room_name", "purpose", "date", "start_time", "end_time")


def parse_time(value: str) -> datetime:
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        raise ValidationError(f"heure invalide : {value}")


# ------------------------------------------------------------
# validate_draft — contrôle avant envoi
# ------------------------------------------------------------
# - emprunteur, salle et objet obligatoires
# - si les deux heures sont données, la fin doit suivre le début
# ------------------------------------------------------------
def validate_draft(draft: LoanRecord):
    if not draft.borrower_name.strip() or not draft.room_name.strip() or not draft.purpose.strip():
        raise ValidationError("tous les champs sont obligatoires")
    if draft.start_time and draft.end_time:
        start = parse_time(draft.start_time)
        end = parse_time(draft.end_time)
        # une heure avec fuseau et une sans : on compare les heures murales
        if (start.tzinfo is None) != (end.tzinfo is None):
            start, end = start.replace(tzinfo=None), end.replace(tzinfo=None)
        if start >= end:
            raise ValidationError("l'heure de fin doit être postérieure à l'heure de début")


def apply_filters(loans: List[LoanRecord], status: str, room: str, borrower: str,
                  session: UserSession) -> List[LoanRecord]:
    """Filtre pur, ordre d'origine conservé.

    Un non-admin ne voit que ses propres prêts, et le filtre emprunteur
    ne s'applique qu'aux admins.
    """
    status = (status or "").lower()
    room = (room or "").lower()
    borrower = (borrower or "").lower() if session.is_admin else ""

    visible = []
    for loan in loans:
        if not session.is_admin and loan.borrower_name != session.identity:
            continue
        if status and loan.status.lower() != status:
            continue
        if room and room not in loan.room_name.lower():
            continue
        if borrower and borrower not in loan.borrower_name.lower():
            continue
        visible.append(loan)
    return visible


# ViewFeatures
# Une seule vue paramétrée par le rôle : l'admin modère et supprime,
# l'utilisateur ne gère que ses propres demandes en attente.
class ViewFeatures:
    def __init__(self, session: UserSession):
        self.session = session
        admin = session.is_admin
        self.search_borrower = admin
        self.moderate = admin
        self.delete = admin
        self.edit_borrower = admin

    def can_edit(self, loan: LoanRecord) -> bool:
        if not loan.is_pending:
            return False
        return self.session.is_admin or loan.borrower_name == self.session.identity


class LoanViewSynchronizer:
    def __init__(self, session: UserSession, repository: RoomLoanRepository):
        self.session = session
        self.repository = repository
        self.features = ViewFeatures(session)
        self.all_loans: List[LoanRecord] = []
        self.visible_loans: List[LoanRecord] = []
        self.stats: Optional[Statistics] = None
        self.status_filter = ""
        self.room_substring = ""
        self.borrower_substring = ""
        self.fresh = False

    # --------------------------------------------------------
    # Lecture
    # --------------------------------------------------------
    def refresh(self):
        self.fresh = False
        try:
            loans = self._call(self.repository.list_all)
            stats = self._call(self.repository.statistics)
        except TransportFailure as e:
            print(f"[sync] refresh failed, view stays stale: {e.message}", flush=True)
            raise

        self.all_loans = loans
        self.stats = stats
        self.apply_filters()
        self.fresh = True
        return self.visible_loans

    def apply_filters(self) -> List[LoanRecord]:
        self.visible_loans = apply_filters(
            self.all_loans, self.status_filter, self.room_substring, self.borrower_substring, self.session
        )
        return self.visible_loans

    def set_filters(self, status: Optional[str] = None, room: Optional[str] = None,
                    borrower: Optional[str] = None) -> List[LoanRecord]:
        if status is not None:
            self.status_filter = status
        if room is not None:
            self.room_substring = room
        if borrower is not None:
            self.borrower_substring = borrower
        return self.apply_filters()

    def reset_filters(self) -> List[LoanRecord]:
        return self.set_filters("", "", "")

    def get(self, loan_id: int) -> Optional[LoanRecord]:
        for loan in self.all_loans:
            if loan.id == loan_id:
                return loan
        return None

    # --------------------------------------------------------
    # Écritures : validation locale, un appel, puis refresh()
    # --------------------------------------------------------
    def create(self, draft: LoanRecord):
        draft = self._own_draft(draft)
        validate_draft(draft)
        self._call(self.repository.create, draft)
        self._after_mutation("create")

    def update(self, loan_id: int, draft: LoanRecord):
        # statut et audit viennent du serveur, jamais du formulaire
        current = self.get(loan_id)
        only = None
        if current is not None:
            draft = current.model_copy(update={name: getattr(draft, name) for name in EDITABLE_FIELDS})
        else:
            only = EDITABLE_FIELDS
        draft = self._own_draft(draft)
        validate_draft(draft)
        self._call(self.repository.update, loan_id, draft, only)
        self._after_mutation("update", loan_id)

    def remove(self, loan_id: int, confirm: Callable[[str], bool]) -> bool:
        if not confirm(DELETE_PROMPT):
            return False
        self._call(self.repository.delete, loan_id)
        self._after_mutation("delete", loan_id)
        return True

    def approve(self, loan_id: int, approver_name: str, notes: str = ""):
        if not (approver_name or "").strip():
            raise ValidationError("le nom de l'administrateur est obligatoire")
        self._call(self.repository.approve, loan_id, Decision(updated_by=approver_name, notes=notes or ""))
        self._after_mutation("approve", loan_id)

    def reject(self, loan_id: int, approver_name: str, notes: str):
        if not (approver_name or "").strip():
            raise ValidationError("le nom de l'administrateur est obligatoire")
        if not (notes or "").strip():
            raise ValidationError("le motif du refus est obligatoire")
        self._call(self.repository.reject, loan_id, Decision(updated_by=approver_name, notes=notes))
        self._after_mutation("reject", loan_id)

    # 401 sur n'importe quel appel : vue vidée, session effacée
    def _call(self, operation, *args):
        try:
            return operation(*args)
        except AuthError:
            print("[sync] unauthorized, clearing session", flush=True)
            self.fresh = False
            self.all_loans = []
            self.visible_loans = []
            self.stats = None
            self.session.clear()
            raise

    def _own_draft(self, draft: LoanRecord) -> LoanRecord:
        # un utilisateur ne réserve qu'à son propre nom
        if self.session.is_admin or not self.session.identity:
            return draft
        return draft.model_copy(update={"borrower_name": self.session.identity})

    def _after_mutation(self, action: str, loan_id: Optional[int] = None):
        self.fresh = False
        print(f"[sync] {action} ok id={loan_id}, refreshing", flush=True)
        self.refresh()
