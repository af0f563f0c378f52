"""Record normalisation, the in-memory record store, and sheet loading."""
from .schemas import AnalysisMode, Batch, DrugBidRecord, RowRejection, Snapshot
from .normalize import normalize_row, normalize_rows
from .store import RecordStore
from .loader import IngestReport, ingest_file, ingest_rows, read_rows
