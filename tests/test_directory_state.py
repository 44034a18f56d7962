from abcinvoice.models.party import Company
from abcinvoice.state import directory as dr

K = "companies"


def _open(state, editing_id=None):
    return dr.reduce_directory(state, dr.OpenForm(kind=K, editing_id=editing_id))


def test_save_started_sets_in_flight_once():
    s = _open(dr.DirectoryState())
    s = dr.reduce_directory(s, dr.SaveStarted(kind=K))
    assert s.form.in_flight
    assert not s.can_submit()
    again = dr.reduce_directory(s, dr.SaveStarted(kind=K))
    assert again is s


def test_save_started_ignored_when_form_closed():
    s = dr.DirectoryState()
    assert dr.reduce_directory(s, dr.SaveStarted(kind=K)) is s


def test_success_closes_form_and_selects_record():
    s = _open(dr.DirectoryState())
    ticket = s.form.ticket
    s = dr.reduce_directory(s, dr.SaveStarted(kind=K))
    rec = Company(id="c1", name="Acme")
    s = dr.reduce_directory(s, dr.SaveSucceeded(kind=K, ticket=ticket, record=rec))
    assert not s.form.open
    assert not s.form.in_flight
    assert s.selected == rec
    assert s.records == (rec,)


def test_failure_clears_in_flight_and_keeps_form_open():
    s = _open(dr.DirectoryState())
    ticket = s.form.ticket
    s = dr.reduce_directory(s, dr.SaveStarted(kind=K))
    s = dr.reduce_directory(s, dr.SaveFailed(kind=K, ticket=ticket, message="boom"))
    assert s.form.open
    assert not s.form.in_flight
    assert s.records == ()


def test_stale_success_updates_list_only():
    s = _open(dr.DirectoryState())
    stale = s.form.ticket
    s = dr.reduce_directory(s, dr.SaveStarted(kind=K))
    s = dr.reduce_directory(s, dr.CloseForm(kind=K))
    s = _open(s)
    rec = Company(id="late", name="Late Ltd")
    s = dr.reduce_directory(s, dr.SaveSucceeded(kind=K, ticket=stale, record=rec))
    assert s.form.open
    assert s.selected_id is None
    assert s.records == (rec,)


def test_edit_replaces_record_in_place():
    a, b = Company(id="a", name="A"), Company(id="b", name="B")
    s = dr.reduce_directory(dr.DirectoryState(), dr.RecordsLoaded(kind=K, records=(a, b)))
    s = _open(s, editing_id="a")
    renamed = a.model_copy(update={"name": "A2"})
    s = dr.reduce_directory(s, dr.SaveSucceeded(kind=K, ticket=s.form.ticket, record=renamed))
    assert [r.name for r in s.records] == ["A2", "B"]


def test_delete_clears_selection():
    a = Company(id="a", name="A")
    s = dr.reduce_directory(dr.DirectoryState(), dr.RecordsLoaded(kind=K, records=(a,)))
    s = dr.reduce_directory(s, dr.SelectRecord(kind=K, record_id="a"))
    s = dr.reduce_directory(s, dr.DeleteStarted(kind=K, record_id="a"))
    assert s.pending_delete == "a"
    assert dr.reduce_directory(s, dr.DeleteStarted(kind=K, record_id="a")) is s
    s = dr.reduce_directory(s, dr.DeleteFinished(kind=K, record_id="a"))
    assert s.records == ()
    assert s.selected_id is None
    assert s.pending_delete is None


def test_delete_failure_keeps_record():
    a = Company(id="a", name="A")
    s = dr.reduce_directory(dr.DirectoryState(), dr.RecordsLoaded(kind=K, records=(a,)))
    s = dr.reduce_directory(s, dr.DeleteStarted(kind=K, record_id="a"))
    s = dr.reduce_directory(s, dr.DeleteFailed(kind=K, record_id="a"))
    assert s.records == (a,)
    assert s.pending_delete is None


def test_reload_drops_vanished_selection():
    a, b = Company(id="a", name="A"), Company(id="b", name="B")
    s = dr.reduce_directory(dr.DirectoryState(), dr.RecordsLoaded(kind=K, records=(a, b)))
    s = dr.reduce_directory(s, dr.SelectRecord(kind=K, record_id="b"))
    s = dr.reduce_directory(s, dr.RecordsLoaded(kind=K, records=(a,)))
    assert s.selected_id is None
