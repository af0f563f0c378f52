import os
import tempfile

# Reports written by the API tests go to a throwaway data directory
os.environ.setdefault("PRICEWATCH_DATA_DIR", tempfile.mkdtemp(prefix="pricewatch-tests-"))
