"""
PENDENCY CONTROL TOWER CONFIGURATION

Purpose:
- Locations of the published spreadsheet tabs
- Apps Script write endpoint
- Network timeouts and refresh delay
- Status vocabulary shared by every engine

Requirements:
• Never hardcode endpoints (use os.getenv)
• Timeout protection on every remote call
• One place for the status strings written by the backend
"""

import os

# ══════════════════════════════════════════════════════════════
# REMOTE STORE (published spreadsheet + Apps Script)
# ══════════════════════════════════════════════════════════════

BASE_URL = os.getenv("PENDENCY_BASE_URL", "")
NOTES_URL = os.getenv("PENDENCY_NOTES_URL", "")
PROCESS_URL = os.getenv("PENDENCY_PROCESS_URL", "")
DATA_URL = os.getenv("PENDENCY_DATA_URL", "")
SCRIPT_URL = os.getenv("PENDENCY_SCRIPT_URL", "")

API_TIMEOUT = int(os.getenv("PENDENCY_API_TIMEOUT", "15"))  # seconds
REFRESH_DELAY_SECONDS = float(os.getenv("PENDENCY_REFRESH_DELAY", "4"))

# Grace period used when the data tab leaves the tolerance blank or at 0
DEFAULT_TOLERANCE_DAYS = int(os.getenv("PENDENCY_DEFAULT_TOLERANCE", "2"))

LOG_LEVEL = os.getenv("PENDENCY_LOG_LEVEL", "INFO")

# ══════════════════════════════════════════════════════════════
# STATUS VOCABULARY (as written in the spreadsheet)
# ══════════════════════════════════════════════════════════════

STATUS_SEARCHING = "EM BUSCA"
STATUS_DISPUTED = "TAD"
STATUS_RESOLVED = "RESOLVIDO"
STATUS_LOCATED = "LOCALIZADA"

RESOLVED_STATUSES = {STATUS_RESOLVED, STATUS_LOCATED}

# Dispute events are sometimes persisted under STATUS_SEARCHING with this token
JOURNAL_DISPUTE_TOKEN = "tad"
NOTE_DISPUTE_MARKER = "dispute started"

SEARCH_DESCRIPTION_PREFIX = "EM BUSCA - search started"
DISPUTE_DESCRIPTION_PREFIX = "TAD - dispute started"
RESOLVE_DEFAULT_TEXT = "Mercadoria marcada como LOCALIZADA/RESOLVIDA."

# Ids of locally created entries until the next refresh brings the server id
TEMP_ID_PREFIX = "temp"

# ══════════════════════════════════════════════════════════════
# LEGACY SPREADSHEET DATES
# ══════════════════════════════════════════════════════════════

SERIAL_DATE_THRESHOLD = 30000
SERIAL_EPOCH_OFFSET_DAYS = 25569  # 1970-01-01 as a day serial (epoch 1899-12-30)
SECONDS_PER_DAY = 86400
