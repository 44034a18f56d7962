from decimal import Decimal

from abcinvoice.state import ledger as lg


def test_save_prepends_new_invoices(make_invoice):
    a, b = make_invoice("A"), make_invoice("B")
    invoices = lg.save(lg.save((), a), b)
    assert [i.invoice_number for i in invoices] == ["B", "A"]


def test_save_twice_replaces_in_place(make_invoice):
    first = make_invoice("A", rate="100")
    other = make_invoice("B")
    invoices = lg.save(lg.save((), first), other)
    updated = first.model_copy(update={"items": [first.items[0].model_copy(update={"rate": Decimal("150")})]})
    invoices = lg.save(invoices, updated)
    assert [i.invoice_number for i in invoices] == ["B", "A"]
    assert len(invoices) == 2
    assert invoices[1].total == Decimal("150.00")


def test_delete_missing_is_noop(make_invoice):
    invoices = (make_invoice("A"),)
    assert lg.delete(invoices, "nope") == invoices
    assert lg.delete(invoices, invoices[0].id) == ()


def test_search_matches_number_or_client_case_insensitive(make_invoice):
    invoices = (
        make_invoice("INV-100", client_name="Wayne Enterprises"),
        make_invoice("INV-200", client_name="Stark Industries"),
        make_invoice("Q-300", client_name="Wayne Foundation"),
    )
    assert [i.invoice_number for i in lg.search(invoices, "wAyNe")] == ["INV-100", "Q-300"]
    assert [i.invoice_number for i in lg.search(invoices, "inv-2")] == ["INV-200"]
    assert lg.search(invoices, "") == list(invoices)
    assert lg.search(invoices, "zzz") == []


def test_paginate_and_total_pages(make_invoice):
    invoices = [make_invoice(f"N{i}") for i in range(12)]
    assert [i.invoice_number for i in lg.paginate(invoices, 1)] == ["N0", "N1", "N2", "N3", "N4"]
    assert [i.invoice_number for i in lg.paginate(invoices, 3)] == ["N10", "N11"]
    assert lg.paginate(invoices, 4) == []
    assert lg.paginate(invoices, 0) == []
    assert lg.total_pages(12) == 3
    assert lg.total_pages(0) == 1


def test_set_status(make_invoice):
    inv = make_invoice("A")
    out = lg.set_status((inv,), inv.id, "paid")
    assert out[0].status == "paid"
    assert inv.status == "draft"


def test_search_resets_page_and_page_is_clamped(make_invoice):
    state = lg.LedgerState()
    for i in range(7):
        state = lg.reduce_ledger(state, lg.SaveInvoice(invoice=make_invoice(f"N{i}")))
    state = lg.reduce_ledger(state, lg.SetPage(page=9))
    assert state.page == 2
    assert len(state.visible()) == 2

    state = lg.reduce_ledger(state, lg.SetSearch(term="N6"))
    assert state.page == 1
    assert state.page_count() == 1
    assert [i.invoice_number for i in state.visible()] == ["N6"]


def test_deleting_last_item_of_last_page_moves_back(make_invoice):
    state = lg.LedgerState(page_size=2)
    for i in range(3):
        state = lg.reduce_ledger(state, lg.SaveInvoice(invoice=make_invoice(f"N{i}")))
    state = lg.reduce_ledger(state, lg.SetPage(page=2))
    last = state.visible()[0]
    state = lg.reduce_ledger(state, lg.DeleteInvoice(invoice_id=last.id))
    assert state.page == 1
