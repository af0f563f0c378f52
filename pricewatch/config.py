"""
PriceWatch — Configuration: paths, column aliases, grouping keys, constants.
"""
import os
from pathlib import Path

# ---------------------------------------------------------------------------
# Paths: override with PRICEWATCH_DATA_DIR env var for server deployment
# ---------------------------------------------------------------------------
_data_dir = Path(os.environ.get("PRICEWATCH_DATA_DIR", str(Path.home() / "PriceWatch")))
BASE_FOLDER = _data_dir
REPORTS_FOLDER = _data_dir / "reports"
UPLOADS_FOLDER = _data_dir / "uploads"

LOG_LEVEL = os.environ.get("PRICEWATCH_LOG_LEVEL", "INFO").upper()

# Spreadsheet extensions accepted by the loader and the upload endpoint
SHEET_EXTENSIONS = (".xlsx", ".xls", ".csv")

# ---------------------------------------------------------------------------
# Canonical record fields
# ---------------------------------------------------------------------------
TEXT_FIELDS = [
    "drug_code",
    "active_ingredient",
    "registration_number",
    "concentration",
    "route_of_administration",
    "therapeutic_group",
    "unit",
    "manufacturer",
    "country_of_origin",
    "facility_name",
    "facility_code",
]
NUMERIC_FIELDS = ["unit_price", "quantity"]
CANONICAL_FIELDS = TEXT_FIELDS + NUMERIC_FIELDS

# A record missing any of these is rejected
IDENTITY_FIELDS = ["active_ingredient", "registration_number", "concentration"]

# "Same drug" for ALERT mode (finer) and COMPARE mode (coarser)
ALERT_KEY_FIELDS = [
    "active_ingredient",
    "registration_number",
    "concentration",
    "route_of_administration",
    "therapeutic_group",
    "unit",
]
COMPARE_KEY_FIELDS = [
    "active_ingredient",
    "concentration",
    "registration_number",
    "therapeutic_group",
]

# ---------------------------------------------------------------------------
# Raw header aliases → canonical field
# Matched after strip() + casefold(). BHYT bid-result sheets use the
# upper-case codes; hand-made sheets tend to use English headers.
# ---------------------------------------------------------------------------
_ALIASES = {
    "drug_code": ["MA_THUOC", "Drug Code"],
    "active_ingredient": ["TEN_HOAT_CHAT", "Active Ingredient", "Ingredient", "Drug Name"],
    "registration_number": ["SO_DANG_KY", "Registration Number", "Registration No", "Reg No"],
    "concentration": ["HAM_LUONG", "Concentration", "Strength"],
    "route_of_administration": ["MADUONGDUNG", "MA_DUONG_DUNG", "Route", "Route of Administration"],
    "therapeutic_group": ["NHOM_TCKT", "Therapeutic Group", "Group"],
    "unit": ["DON_VI_TINH", "Unit", "UOM"],
    "manufacturer": ["HANG_SAN_XUAT", "Manufacturer"],
    "country_of_origin": ["NUOC_SAN_XUAT", "Country of Origin", "Country"],
    "unit_price": ["GIA", "Unit Price", "Price"],
    "quantity": ["SOLUONG", "SO_LUONG", "Quantity", "Qty"],
    "facility_name": ["CO_SO_KCB", "Facility Name", "Facility"],
    "facility_code": ["MA_CSKCB", "Facility Code"],
}


def _camel(name):
    """unit_price -> unitPrice"""
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


COLUMN_ALIASES = {}
for _field, _names in _ALIASES.items():
    COLUMN_ALIASES[_field.casefold()] = _field
    COLUMN_ALIASES[_camel(_field).casefold()] = _field
    for _name in _names:
        COLUMN_ALIASES[_name.strip().casefold()] = _field

# Header written back for each canonical field when a record has no source header
EXPORT_HEADERS = {field: names[0] for field, names in _ALIASES.items()}

# ---------------------------------------------------------------------------
# Result columns: the codes the BHYT report template uses, accepted when
# reconciling externally produced result rows
# ---------------------------------------------------------------------------
RESULT_ALIASES = {
    "GIA_THAP_NHAT": "min_price_in_group",
    "CHENH_GIA": "price_delta",
    "TIEN_CHENH_LECH": "excess_cost",
    "SO_LUONG_CS": "facility_count",
    "GIA_MIN": "min_price",
    "GIA_MAX": "max_price",
    "CHI_TIET_GIA": "price_detail",
}
for _field in set(RESULT_ALIASES.values()):
    RESULT_ALIASES[_camel(_field).upper()] = _field

# Float comparison tolerance when reconciling external rows
PRICE_TOLERANCE = 1e-6

# ---------------------------------------------------------------------------
# Demo dataset (mirrors the sample sheet shipped with the web tool)
# ---------------------------------------------------------------------------
DEMO_MANUFACTURERS = ["PharmaCorp A", "MediLife B", "BioTech C", "GlobalHealth D"]
DEMO_FACILITIES = ["BV Da Khoa Tinh A", "BV Huyen B", "TT Y Te C", "BV TW D"]
DEMO_DRUGS = [
    {"name": "Paracetamol", "conc": "500mg", "reg": "VD-12345-21", "route": "Uong", "group": "Nhom 1"},
    {"name": "Cefuroxim", "conc": "500mg", "reg": "VD-67890-22", "route": "Uong", "group": "Nhom 2"},
    {"name": "Atorvastatin", "conc": "10mg", "reg": "VN-11223-23", "route": "Uong", "group": "Nhom 1"},
    {"name": "Metformin", "conc": "850mg", "reg": "VD-33445-21", "route": "Uong", "group": "Nhom 3"},
]
DEMO_UNIT = "Vien"
DEMO_COUNTRY = "Viet Nam"
DEMO_BATCH_NAME = "Mock_Data_Demo.xlsx"
