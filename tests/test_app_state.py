from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from abcinvoice.state import app as st
from abcinvoice.state import directory as dr
from abcinvoice.state import editor as ed
from abcinvoice.state.store import Store
from abcinvoice.storage.remote import CLIENTS, COMPANIES

NOW = datetime(2024, 5, 2, 8, 0, tzinfo=timezone.utc)


@pytest.fixture
def store(company, client):
    s = Store(st.initial_state(today=date(2024, 5, 1)))
    s.dispatch(dr.RecordsLoaded(kind=COMPANIES, records=(company,)))
    s.dispatch(dr.RecordsLoaded(kind=CLIENTS, records=(client,)))
    s.dispatch(dr.SelectRecord(kind=COMPANIES, record_id=company.id))
    s.dispatch(dr.SelectRecord(kind=CLIENTS, record_id=client.id))
    s.dispatch(ed.UpdateItem(item_id="1", description="Widgets", quantity=3, rate=Decimal("19.99")))
    return s


def test_selecting_records_feeds_the_editor(store, company, client):
    assert store.state.editor.company == company
    assert store.state.editor.client == client


def test_submit_saves_and_switches_to_preview(store):
    state = store.dispatch(st.SubmitDraft(now=NOW))
    assert state.active_tab == "preview"
    assert len(state.ledger.invoices) == 1
    inv = st.current_invoice(state)
    assert inv is not None
    assert inv.total == Decimal("59.97")
    assert state.notification.message == "Invoice created successfully."
    assert state.editor.draft.id is None


def test_submit_without_selection_notifies_error():
    s = Store(st.initial_state())
    state = s.dispatch(st.SubmitDraft(now=NOW))
    assert state.notification.kind == "error"
    assert state.notification.message == "Please select a company and client before saving the invoice."
    assert state.ledger.invoices == ()
    assert state.editor.errors


def test_edit_and_resubmit_replaces_entry(store):
    state = store.dispatch(st.SubmitDraft(now=NOW))
    inv_id = state.current_invoice_id
    state = store.dispatch(st.EditInvoice(invoice_id=inv_id))
    assert state.active_tab == "details"
    assert state.editor.draft.id == inv_id
    store.dispatch(ed.UpdateItem(item_id="1", quantity=5))
    state = store.dispatch(st.SubmitDraft(now=NOW))
    assert len(state.ledger.invoices) == 1
    assert state.ledger.invoices[0].total == Decimal("99.95")
    assert state.notification.message == "Invoice updated successfully."


def test_remove_current_invoice_falls_back_to_latest(store):
    first = store.dispatch(st.SubmitDraft(now=NOW)).current_invoice_id
    store.dispatch(ed.UpdateItem(item_id="1", rate=Decimal("1")))
    second = store.dispatch(st.SubmitDraft(now=NOW)).current_invoice_id
    state = store.dispatch(st.RemoveInvoice(invoice_id=second))
    assert state.current_invoice_id is None
    assert st.current_invoice(state).id == first


def test_preview_without_invoices_is_empty():
    assert st.current_invoice(st.initial_state()) is None


def test_save_current_without_invoice_is_an_error():
    state = Store(st.initial_state()).dispatch(st.SaveCurrentInvoice())
    assert state.notification.kind == "error"


def test_directory_save_result_notifies(store, company):
    store.dispatch(dr.OpenForm(kind=COMPANIES, editing_id=company.id))
    ticket = store.state.companies.form.ticket
    store.dispatch(dr.SaveStarted(kind=COMPANIES))
    renamed = company.model_copy(update={"name": "Acme Renamed"})
    state = store.dispatch(dr.SaveSucceeded(kind=COMPANIES, ticket=ticket, record=renamed))
    assert state.notification.message == "Company saved successfully."
    assert state.editor.company.name == "Acme Renamed"

    store.dispatch(dr.OpenForm(kind=COMPANIES))
    ticket = store.state.companies.form.ticket
    store.dispatch(dr.SaveStarted(kind=COMPANIES))
    state = store.dispatch(dr.SaveFailed(kind=COMPANIES, ticket=ticket, message="down"))
    assert state.notification.kind == "error"
    assert state.notification.message == "Failed to save company. Please try again."
    assert not state.companies.form.in_flight


def test_deleting_selected_client_clears_editor_selection(store, client):
    store.dispatch(dr.DeleteStarted(kind=CLIENTS, record_id=client.id))
    state = store.dispatch(dr.DeleteFinished(kind=CLIENTS, record_id=client.id))
    assert state.editor.client is None
    assert state.notification.message == "Client deleted successfully."


def test_load_failure_notifies():
    state = Store(st.initial_state()).dispatch(st.DirectoryLoadFailed(kind=COMPANIES))
    assert state.notification.message == "Failed to fetch companies."


def test_dismiss_only_matching_notification():
    s = Store(st.initial_state())
    s.dispatch(st.Notify(message="one"))
    seq = s.state.notification.seq
    s.dispatch(st.Notify(message="two"))
    assert s.dispatch(st.DismissNotification(seq=seq)).notification.message == "two"
    assert s.dispatch(st.DismissNotification(seq=seq + 1)).notification is None


def test_store_notifies_subscribers():
    s = Store(st.initial_state())
    seen = []
    unsubscribe = s.subscribe(lambda new, prev, action: seen.append((prev.active_tab, new.active_tab)))
    s.dispatch(st.SetTab(tab="history"))
    unsubscribe()
    s.dispatch(st.SetTab(tab="details"))
    assert seen == [("details", "history")]


def test_unknown_action_is_rejected():
    with pytest.raises(TypeError):
        st.reduce_app(st.initial_state(), object())
