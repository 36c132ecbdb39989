"""
SPREADSHEET FEED - VALIDATION TEST

Coverage:
1. Header normalization and alias matching
2. Positional fallback to the original sheet layout
3. Rows without a primary key are skipped
4. Data tab parameters (labels, positions, fallbacks)
5. fetch() over a monkeypatched requests session
6. Ragged rows are dropped without failing the tab
"""

from datetime import date

import pytest
import requests

from pendency.storage.sheet_feed import (
    DOCUMENT_COLUMNS,
    FeedError,
    SheetFeed,
    normalize_header,
    parse_documents,
    parse_notes,
    parse_parameters,
    parse_transitions,
    resolve_columns,
)

BASE_CSV = (
    "CTE,Série,Código,Data Emissão,Prazo Baixa Dias,Data Limite Baixa,Status,Coleta,Entrega,Valor CTE\n"
    "1001,06,77,01/03/2024,4,05/03/2024,EM BUSCA,CXS,POA,\"1.234,56\"\n"
    ",1,78,01/03/2024,4,05/03/2024,,CXS,POA,10\n"
    "1002,1,79,01/03/2024,4,2024-03-07,,CXS,SAO,\"50,00\"\n"
)

NOTES_CSV = (
    "ID,CTE,SERIE,CODIGO,DATA,USUARIO,TEXTO,LINK_IMAGEM,STATUS_BUSCA\n"
    "n1,1001,6,77,05/03/2024 10:00,ana,Volume sumiu,,EM BUSCA\n"
    ",1001,6,77,05/03/2024 11:00,ana,sem id,,\n"
)

PROCESS_CSV = (
    "ID,CTE,SERIE,DATA,USUARIO,DESCRICAO,LINK,STATUS\n"
    "p1,1001,6,05/03/2024 10:00,ana,Busca aberta,,EM BUSCA\n"
    ",1001,6,05/03/2024 12:00,bruno,Achado,,RESOLVIDO\n"
    "p3,1001,6,05/03/2024 13:00,bruno,sem status,,\n"
)

DATA_CSV = (
    "HOJE,05/03/2024\n"
    "AMANHA,06/03/2024\n"
    "PRAZO,3\n"
)


def test_normalize_header():
    assert normalize_header("Data Limite Baixa") == "DATA_LIMITE_BAIXA"
    assert normalize_header("data-limite-baixa") == "DATA_LIMITE_BAIXA"
    assert normalize_header(" Série ") == "SERIE"
    assert normalize_header("Destinatário") == "DESTINATARIO"
    assert normalize_header(None) == ""


def test_resolve_columns_by_alias_in_any_order():
    mapping = resolve_columns(["Entrega", "cte", "STATUS"], DOCUMENT_COLUMNS)
    assert mapping["cte"] == 1
    assert mapping["delivery_unit"] == 0
    assert mapping["declared_status"] == 2


def test_resolve_columns_positional_fallback():
    headers = ["A", "B", "C", "D", "E", "F", "G"]
    mapping = resolve_columns(headers, DOCUMENT_COLUMNS)
    assert mapping["cte"] == 0
    assert mapping["limit_date"] == 5
    assert mapping["declared_status"] == 6
    assert mapping["delivery_unit"] is None


def test_parse_documents():
    documents = parse_documents(BASE_CSV)

    assert [d.cte for d in documents] == ["1001", "1002"]
    first = documents[0]
    assert first.serie == "06"
    assert first.limit_date == "05/03/2024"
    assert first.declared_status == "EM BUSCA"
    assert first.delivery_unit == "POA"
    assert first.cte_value == "1.234,56"
    assert first.recipient == ""


def test_parse_notes_skips_rows_without_id():
    notes = parse_notes(NOTES_CSV)

    assert len(notes) == 1
    assert notes[0].id == "n1"
    assert notes[0].status_tag == "EM BUSCA"
    assert notes[0].pending is False


def test_ragged_rows_are_dropped_and_the_rest_survive(caplog):
    text = "CTE,SERIE,STATUS\n1001,1,EM BUSCA\n1002,1,,extra\n1003,1,\n"

    with caplog.at_level("WARNING"):
        documents = parse_documents(text)

    assert [d.cte for d in documents] == ["1001", "1003"]
    assert documents[0].declared_status == "EM BUSCA"
    assert "malformed row" in caplog.text


def test_unquoted_comma_in_note_text_drops_only_that_row():
    text = (
        "ID,CTE,SERIE,DATA,USUARIO,TEXTO\n"
        "n1,1001,1,05/03/2024 10:00,ana,conferido\n"
        "n2,1001,1,05/03/2024 11:00,ana,caixa aberta, sem volume\n"
        "n3,1002,1,05/03/2024 12:00,bruno,ok\n"
    )

    notes = parse_notes(text)

    assert [n.id for n in notes] == ["n1", "n3"]


def test_parse_transitions_synthesizes_ids_and_skips_untagged_rows():
    transitions = parse_transitions(PROCESS_CSV)

    assert [t.status_tag for t in transitions] == ["EM BUSCA", "RESOLVIDO"]
    assert transitions[0].id == "p1"
    assert transitions[1].id == "row-2"
    assert transitions[1].description == "Achado"


def test_empty_tab_yields_nothing():
    assert parse_transitions("") == []
    assert parse_documents("   ") == []


def test_parse_parameters_by_label():
    parameters = parse_parameters(DATA_CSV)
    assert parameters.reference_today == date(2024, 3, 5)
    assert parameters.reference_tomorrow == date(2024, 3, 6)
    assert parameters.tolerance_days == 3


def test_parse_parameters_by_position():
    parameters = parse_parameters("x,08/03/2024\ny,11/03/2024\nz,2\n")
    assert parameters.reference_today == date(2024, 3, 8)
    assert parameters.reference_tomorrow == date(2024, 3, 11)
    assert parameters.tolerance_days == 2


def test_parse_parameters_fallbacks():
    parameters = parse_parameters("HOJE,???\n", fallback_today=date(2024, 3, 5))
    assert parameters.reference_today == date(2024, 3, 5)
    assert parameters.reference_tomorrow == date(2024, 3, 6)
    assert parameters.tolerance_days == 0


# ==================================================
# FETCH (network isolated)
# ==================================================
class FakeResponse:
    def __init__(self, text, status_code=200):
        self.text = text
        self.status_code = status_code
        self.encoding = None

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} Error")


class FakeSession:
    def __init__(self, pages):
        self.pages = pages
        self.requested = []

    def get(self, url, timeout=None):
        self.requested.append((url, timeout))
        page = self.pages[url]
        if isinstance(page, Exception):
            raise page
        return page


def make_feed(pages, process_url="process"):
    return SheetFeed(
        base_url="base",
        notes_url="notes",
        process_url=process_url,
        data_url="data",
        timeout=7,
        session=FakeSession(pages),
    )


def all_pages():
    return {
        "base": FakeResponse(BASE_CSV),
        "notes": FakeResponse(NOTES_CSV),
        "process": FakeResponse(PROCESS_CSV),
        "data": FakeResponse(DATA_CSV),
    }


def test_fetch_reads_every_tab():
    feed = make_feed(all_pages())

    result = feed.fetch()

    assert len(result.documents) == 2
    assert len(result.notes) == 1
    assert len(result.transitions) == 2
    assert result.parameters.reference_today == date(2024, 3, 5)
    assert all(timeout == 7 for _, timeout in feed.session.requested)


def test_fetch_without_process_tab_yields_empty_journal():
    pages = all_pages()
    del pages["process"]
    feed = make_feed(pages, process_url="")

    result = feed.fetch()

    assert result.transitions == []


def test_fetch_timeout_raises_feed_error():
    pages = all_pages()
    pages["notes"] = requests.exceptions.Timeout("slow")
    feed = make_feed(pages)

    with pytest.raises(FeedError):
        feed.fetch()


def test_fetch_http_error_raises_feed_error():
    pages = all_pages()
    pages["base"] = FakeResponse("", status_code=404)
    feed = make_feed(pages)

    with pytest.raises(FeedError):
        feed.fetch()


def test_missing_url_raises_feed_error():
    feed = SheetFeed(base_url="", notes_url="n", process_url="", data_url="d", session=FakeSession({}))
    with pytest.raises(FeedError):
        feed.fetch()


def test_default_session_is_requests(monkeypatch):
    pages = all_pages()

    def fake_get(self, url, timeout=None):
        return pages[url]

    monkeypatch.setattr(requests.Session, "get", fake_get)
    feed = SheetFeed(base_url="base", notes_url="notes", process_url="process", data_url="data")

    assert len(feed.fetch().documents) == 2
