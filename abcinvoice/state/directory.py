# abcinvoice/state/directory.py
"""
État d'un panneau annuaire (entreprises ou clients) côté UI.

`form.in_flight` sert de verrou: tant qu'un enregistrement distant est en cours,
aucun second enregistrement n'est lancé pour ce formulaire. Chaque ouverture /
fermeture du formulaire incrémente `form.ticket`; un résultat qui revient avec
un ticket périmé met à jour la liste mais ne touche ni le formulaire ni la
sélection.
"""
from __future__ import annotations
from typing import Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict

from abcinvoice.models.party import Client, Company

Record = Union[Company, Client]


class FormState(BaseModel):
    model_config = ConfigDict(frozen=True)

    open: bool = False
    editing_id: Optional[str] = None
    in_flight: bool = False
    ticket: int = 0


class DirectoryState(BaseModel):
    model_config = ConfigDict(frozen=True)

    records: Tuple[Record, ...] = ()
    selected_id: Optional[str] = None
    form: FormState = FormState()
    pending_delete: Optional[str] = None

    @property
    def selected(self) -> Optional[Record]:
        return next((r for r in self.records if r.id == self.selected_id), None)

    def get(self, record_id: str) -> Optional[Record]:
        return next((r for r in self.records if r.id == record_id), None)

    def can_submit(self) -> bool:
        return self.form.open and not self.form.in_flight


# ---------- Actions ----------

class _Action(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: str  # "companies" | "clients"


class RecordsLoaded(_Action):
    records: Tuple[Record, ...]


class SelectRecord(_Action):
    record_id: Optional[str] = None


class OpenForm(_Action):
    editing_id: Optional[str] = None


class CloseForm(_Action):
    pass


class SaveStarted(_Action):
    pass


class SaveSucceeded(_Action):
    ticket: int
    record: Record


class SaveFailed(_Action):
    ticket: int
    message: str = ""


class DeleteStarted(_Action):
    record_id: str


class DeleteFinished(_Action):
    record_id: str


class DeleteFailed(_Action):
    record_id: str


DirectoryAction = Union[
    RecordsLoaded, SelectRecord, OpenForm, CloseForm, SaveStarted, SaveSucceeded, SaveFailed,
    DeleteStarted, DeleteFinished, DeleteFailed,
]


def _upsert(records: Tuple, record) -> Tuple:
    if any(r.id == record.id for r in records):
        return tuple(record if r.id == record.id else r for r in records)
    return tuple(records) + (record,)


def reduce_directory(state: DirectoryState, action: DirectoryAction) -> DirectoryState:
    form = state.form

    if isinstance(action, RecordsLoaded):
        selected = state.selected_id if any(r.id == state.selected_id for r in action.records) else None
        return state.model_copy(update={"records": tuple(action.records), "selected_id": selected})

    if isinstance(action, SelectRecord):
        return state.model_copy(update={"selected_id": action.record_id})

    if isinstance(action, OpenForm):
        new_form = form.model_copy(update={"open": True, "editing_id": action.editing_id, "ticket": form.ticket + 1})
        return state.model_copy(update={"form": new_form})

    if isinstance(action, CloseForm):
        new_form = form.model_copy(update={"open": False, "editing_id": None, "ticket": form.ticket + 1})
        return state.model_copy(update={"form": new_form})

    if isinstance(action, SaveStarted):
        if not state.can_submit():
            return state
        return state.model_copy(update={"form": form.model_copy(update={"in_flight": True})})

    if isinstance(action, SaveSucceeded):
        records = _upsert(state.records, action.record)
        if action.ticket != form.ticket:
            # résultat tardif: la liste suit le stockage, le formulaire n'est pas touché
            return state.model_copy(update={"records": records, "form": form.model_copy(update={"in_flight": False})})
        new_form = FormState(open=False, editing_id=None, in_flight=False, ticket=form.ticket + 1)
        return state.model_copy(update={"records": records, "selected_id": action.record.id, "form": new_form})

    if isinstance(action, SaveFailed):
        return state.model_copy(update={"form": form.model_copy(update={"in_flight": False})})

    if isinstance(action, DeleteStarted):
        if state.pending_delete is not None:
            return state
        return state.model_copy(update={"pending_delete": action.record_id})

    if isinstance(action, DeleteFinished):
        # introuvable côté stockage = déjà supprimé: on retire aussi localement
        update = {
            "pending_delete": None,
            "records": tuple(r for r in state.records if r.id != action.record_id),
        }
        if state.selected_id == action.record_id:
            update["selected_id"] = None
        return state.model_copy(update=update)

    if isinstance(action, DeleteFailed):
        return state.model_copy(update={"pending_delete": None})

    raise TypeError(f"Unsupported directory action: {type(action).__name__}")
