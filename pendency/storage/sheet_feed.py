"""
SPREADSHEET FEED

Purpose:
- Fetch the published CSV tabs (base, notes, process control, data)
- Tolerate header variants (case, accents, natural-language names)
- Map rows to typed records, skipping rows without a primary key
- Read the business calendar from the data tab

Requirements:
• Timeout protection on every request
• A failed fetch is fatal for the whole refresh cycle (FeedError)
• Malformed rows are skipped, never raised

Author: Pendency Control Tower
"""

import io
import logging
import unicodedata
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Dict, List, Optional, Sequence, Tuple

import pandas as pd
import requests

from pendency import config
from pendency.core.date_normalizer import normalize_date
from pendency.core.deadline_engine import coerce_tolerance
from pendency.core.models import CteDocument, GlobalParameters, Note, ProcessTransition

logger = logging.getLogger(__name__)


class FeedError(Exception):
    """Raised when the tabular feed cannot be fetched or parsed."""
    pass


# ══════════════════════════════════════════════════════════════
# COLUMN ALIASES
# field -> (accepted normalized headers, position in the original sheet)
# ══════════════════════════════════════════════════════════════

DOCUMENT_COLUMNS: Dict[str, Tuple[Sequence[str], int]] = {
    "cte": (("CTE", "CT_E", "NUMERO_CTE", "DOCUMENTO", "DOCUMENT", "DOCUMENT_NUMBER"), 0),
    "serie": (("SERIE", "SERIES", "REVISION"), 1),
    "codigo": (("CODIGO", "CODE", "COD"), 2),
    "issue_date": (("DATA_EMISSAO", "EMISSAO", "ISSUE_DATE", "DATA_DE_EMISSAO"), 3),
    "deadline_days": (("PRAZO_BAIXA_DIAS", "PRAZO", "PRAZO_DIAS", "DEADLINE_DAYS"), 4),
    "limit_date": (("DATA_LIMITE_BAIXA", "DATA_LIMITE", "LIMITE", "LIMIT_DATE", "DATA_LIMITE_DE_BAIXA"), 5),
    "declared_status": (("STATUS", "SITUACAO", "DECLARED_STATUS"), 6),
    "collection_unit": (("COLETA", "UNIDADE_COLETA", "ORIGEM", "COLLECTION_UNIT"), 7),
    "delivery_unit": (("ENTREGA", "UNIDADE_ENTREGA", "UNIDADE_DESTINO", "UNIDADE_DE_DESTINO", "DESTINO", "DELIVERY_UNIT"), 8),
    "cte_value": (("VALOR_CTE", "VALOR", "VALUE", "CTE_VALUE"), 9),
    "delivery_tax": (("TX_ENTREGA", "TAXA_ENTREGA", "TAXA_DE_ENTREGA", "DELIVERY_TAX"), 10),
    "volumes": (("VOLUMES", "VOLUME", "QTD_VOLUMES"), 11),
    "weight": (("PESO", "WEIGHT", "PESO_KG"), 12),
    "payment_type": (("FRETE_PAGO", "TIPO_FRETE", "PAGAMENTO", "PAYMENT_TYPE"), 13),
    "recipient": (("DESTINATARIO", "CLIENTE", "RECIPIENT"), 14),
    "justification": (("JUSTIFICATIVA", "JUSTIFICATION", "OBSERVACAO"), 15),
}

NOTE_COLUMNS: Dict[str, Tuple[Sequence[str], int]] = {
    "id": (("ID", "ID_NOTA", "NOTE_ID"), 0),
    "cte": (("CTE", "CT_E", "NUMERO_CTE", "DOCUMENTO"), 1),
    "serie": (("SERIE", "SERIES", "REVISION"), 2),
    "codigo": (("CODIGO", "CODE", "COD"), 3),
    "timestamp": (("DATA", "DATA_HORA", "TIMESTAMP", "DATE"), 4),
    "author": (("USUARIO", "USER", "AUTOR", "AUTHOR"), 5),
    "text": (("TEXTO", "TEXT", "NOTA", "OBSERVACAO"), 6),
    "image_link": (("LINK_IMAGEM", "IMAGEM", "IMAGE", "ANEXO", "LINK"), 7),
    "status_tag": (("STATUS_BUSCA", "STATUS", "TAG"), 8),
}

PROCESS_COLUMNS: Dict[str, Tuple[Sequence[str], int]] = {
    "id": (("ID", "ID_PROCESSO", "PROCESS_ID"), 0),
    "cte": (("CTE", "CT_E", "NUMERO_CTE", "DOCUMENTO"), 1),
    "serie": (("SERIE", "SERIES", "REVISION"), 2),
    "timestamp": (("DATA", "DATA_HORA", "TIMESTAMP", "DATE"), 3),
    "actor": (("USUARIO", "USER", "RESPONSAVEL", "ACTOR"), 4),
    "description": (("DESCRICAO", "DESCRIPTION", "TEXTO", "HISTORICO"), 5),
    "link": (("LINK", "ANEXO", "LINK_ANEXO"), 6),
    "status_tag": (("STATUS", "STATUS_PROCESSO", "STATUS_BUSCA", "TAG"), 7),
}

PARAMETER_LABELS = {
    "reference_today": ("HOJE", "DATA_HOJE", "TODAY", "DATA_ATUAL"),
    "reference_tomorrow": ("AMANHA", "DATA_AMANHA", "TOMORROW"),
    "tolerance_days": ("PRAZO", "DIAS", "TOLERANCIA", "TOLERANCE", "DEADLINE_DAYS", "PRAZO_CRITICO"),
}


def normalize_header(header) -> str:
    """'Data Limite Baixa' / 'data-limite-baixa' / 'DATA_LIMITE_BAIXA' -> 'DATA_LIMITE_BAIXA'."""
    text = unicodedata.normalize("NFKD", str(header or ""))
    text = "".join(ch for ch in text if not unicodedata.combining(ch))
    text = text.strip().upper()
    for separator in (" ", "-", ".", "/"):
        text = text.replace(separator, "_")
    while "__" in text:
        text = text.replace("__", "_")
    return text.strip("_")


def resolve_columns(headers: Sequence[str], columns: Dict[str, Tuple[Sequence[str], int]]) -> Dict[str, Optional[int]]:
    """
    Map each field to a column index.

    Alias match first; positional fallback to the original sheet layout
    when no header matches.
    """
    normalized = [normalize_header(h) for h in headers]
    mapping: Dict[str, Optional[int]] = {}

    for field_name, (aliases, _) in columns.items():
        mapping[field_name] = next((i for i, h in enumerate(normalized) if h in aliases), None)

    claimed = {i for i in mapping.values() if i is not None}
    for field_name, (_, position) in columns.items():
        if mapping[field_name] is None and position < len(headers) and position not in claimed:
            mapping[field_name] = position
            claimed.add(position)

    return mapping


def _skip_bad_line(bad_line: List[str]) -> None:
    """on_bad_lines hook: drop rows with more fields than the header."""
    logger.warning(f"Skipped malformed row with {len(bad_line)} fields: {bad_line[:2]}")
    return None


def _read_frame(text: str) -> pd.DataFrame:
    """Parse CSV text as strings only, blanks instead of NaN. Ragged rows are dropped."""
    if not text or not text.strip():
        return pd.DataFrame()
    return pd.read_csv(
        io.StringIO(text),
        header=None,
        dtype=str,
        keep_default_na=False,
        skip_blank_lines=True,
        engine="python",
        on_bad_lines=_skip_bad_line,
    ).fillna("")


def _rows_as_records(frame: pd.DataFrame, columns: Dict[str, Tuple[Sequence[str], int]]) -> List[Dict[str, str]]:
    if frame.empty:
        return []

    headers = [str(h) for h in frame.iloc[0].tolist()]
    mapping = resolve_columns(headers, columns)

    records = []
    for values in frame.iloc[1:].itertuples(index=False, name=None):
        record = {}
        for field_name, index in mapping.items():
            raw = values[index] if index is not None and index < len(values) else ""
            record[field_name] = str(raw).strip()
        records.append(record)
    return records


# ══════════════════════════════════════════════════════════════
# ROW MAPPING
# ══════════════════════════════════════════════════════════════

def parse_documents(text: str) -> List[CteDocument]:
    documents = []
    skipped = 0
    for record in _rows_as_records(_read_frame(text), DOCUMENT_COLUMNS):
        if not record["cte"]:
            skipped += 1
            continue
        documents.append(CteDocument(**record))

    if skipped:
        logger.warning(f"Skipped {skipped} base rows without CTE")
    return documents


def parse_notes(text: str) -> List[Note]:
    notes = []
    skipped = 0
    for record in _rows_as_records(_read_frame(text), NOTE_COLUMNS):
        if not record["id"] or not record["cte"]:
            skipped += 1
            continue
        notes.append(Note(pending=False, **record))

    if skipped:
        logger.warning(f"Skipped {skipped} note rows without ID/CTE")
    return notes


def parse_transitions(text: str) -> List[ProcessTransition]:
    transitions = []
    skipped = 0
    for position, record in enumerate(_rows_as_records(_read_frame(text), PROCESS_COLUMNS), start=1):
        if not record["cte"] or not record["status_tag"]:
            skipped += 1
            continue
        if not record["id"]:
            record["id"] = f"row-{position}"
        transitions.append(ProcessTransition(**record))

    if skipped:
        logger.warning(f"Skipped {skipped} process rows without CTE/STATUS")
    return transitions


def parse_parameters(text: str, fallback_today: Optional[date] = None) -> GlobalParameters:
    """
    Read the business calendar from label/value rows.

    Labels are matched by alias; otherwise rows 0, 1, 2 are today,
    tomorrow and tolerance. A missing today falls back to fallback_today
    (the caller's clock); a missing tomorrow is today + 1.
    """
    frame = _read_frame(text)
    rows = [list(r) for r in frame.itertuples(index=False, name=None)] if not frame.empty else []

    values: Dict[str, str] = {}
    for row in rows:
        if len(row) < 2:
            continue
        label = normalize_header(row[0])
        for key, aliases in PARAMETER_LABELS.items():
            if label in aliases and key not in values:
                values[key] = str(row[1]).strip()

    for position, key in enumerate(("reference_today", "reference_tomorrow", "tolerance_days")):
        if key not in values and position < len(rows) and len(rows[position]) > 1:
            values[key] = str(rows[position][1]).strip()

    today = normalize_date(values.get("reference_today")) or fallback_today or date.today()
    tomorrow = normalize_date(values.get("reference_tomorrow")) or today + timedelta(days=1)

    return GlobalParameters(
        reference_today=today,
        reference_tomorrow=tomorrow,
        tolerance_days=coerce_tolerance(values.get("tolerance_days")),
    )


# ══════════════════════════════════════════════════════════════
# FETCH
# ══════════════════════════════════════════════════════════════

@dataclass
class FeedResult:
    """One consistent read of every tab."""
    documents: List[CteDocument] = field(default_factory=list)
    notes: List[Note] = field(default_factory=list)
    transitions: List[ProcessTransition] = field(default_factory=list)
    parameters: Optional[GlobalParameters] = None


class SheetFeed:
    """Reads the published spreadsheet tabs over HTTP."""

    def __init__(
        self,
        base_url: str = None,
        notes_url: str = None,
        process_url: str = None,
        data_url: str = None,
        timeout: int = None,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url if base_url is not None else config.BASE_URL
        self.notes_url = notes_url if notes_url is not None else config.NOTES_URL
        self.process_url = process_url if process_url is not None else config.PROCESS_URL
        self.data_url = data_url if data_url is not None else config.DATA_URL
        self.timeout = timeout or config.API_TIMEOUT
        self.session = session or requests.Session()

    def _fetch_text(self, url: str, tab: str) -> str:
        if not url:
            raise FeedError(f"URL for tab '{tab}' is not configured")

        try:
            logger.info(f"Fetching tab '{tab}'")
            response = self.session.get(url, timeout=self.timeout)
            response.raise_for_status()
        except requests.exceptions.Timeout as e:
            logger.error(f"Timeout fetching tab '{tab}'")
            raise FeedError(f"Timeout fetching tab '{tab}'") from e
        except requests.exceptions.RequestException as e:
            logger.error(f"Error fetching tab '{tab}': {str(e)}")
            raise FeedError(f"Error fetching tab '{tab}': {e}") from e

        # Published sheets are UTF-8 even when no charset is declared
        response.encoding = "utf-8"
        return response.text

    def fetch(self) -> FeedResult:
        """
        Fetch and parse every tab.

        Raises FeedError if any tab fails; nothing partial is returned.
        The process tab is optional: an unconfigured URL yields an empty journal.
        """
        base_text = self._fetch_text(self.base_url, "base")
        notes_text = self._fetch_text(self.notes_url, "notes")
        process_text = self._fetch_text(self.process_url, "process") if self.process_url else ""
        data_text = self._fetch_text(self.data_url, "data")

        try:
            result = FeedResult(
                documents=parse_documents(base_text),
                notes=parse_notes(notes_text),
                transitions=parse_transitions(process_text),
                parameters=parse_parameters(data_text),
            )
        except (pd.errors.ParserError, ValueError) as e:
            raise FeedError(f"Malformed feed: {e}") from e

        logger.info(
            f"Feed loaded: {len(result.documents)} documents, {len(result.notes)} notes, "
            f"{len(result.transitions)} transitions"
        )
        return result
