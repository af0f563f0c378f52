"""
Mode dispatch for the analysis algorithms.
"""
from __future__ import annotations

from typing import Sequence, Union

from pricewatch.analytics.alert import alert_analysis
from pricewatch.analytics.compare import compare_analysis
from pricewatch.data.schemas import AlertResult, AnalysisMode, CompareResult, DrugBidRecord

AnalysisResult = Union[AlertResult, CompareResult]

_ALGORITHMS = {
    AnalysisMode.ALERT: alert_analysis,
    AnalysisMode.COMPARE: compare_analysis,
}


def analyze(mode: AnalysisMode | str, records: Sequence[DrugBidRecord]) -> list[AnalysisResult]:
    """Run the algorithm for ``mode`` over records in store order.

    Pure: the same mode and record sequence always give the same rows in
    the same order.
    """
    return _ALGORITHMS[AnalysisMode.parse(mode)](records)


# Built-in query text for each mode. Shown to users and handed to external
# executors; never parsed here.
REFERENCE_QUERIES = {
    AnalysisMode.ALERT: """\
WITH NHOM_CO_NHIEU_GIA AS (
    SELECT TEN_HOAT_CHAT, SO_DANG_KY, HAM_LUONG, MADUONGDUNG, NHOM_TCKT, DON_VI_TINH,
           MIN(GIA) AS GIA_THAP_NHAT
    FROM THAU_TINH
    GROUP BY TEN_HOAT_CHAT, SO_DANG_KY, HAM_LUONG, MADUONGDUNG, NHOM_TCKT, DON_VI_TINH
    HAVING COUNT(DISTINCT GIA) > 1
)
SELECT t.*, n.GIA_THAP_NHAT,
       (t.GIA - n.GIA_THAP_NHAT) AS CHENH_GIA,
       (t.GIA - n.GIA_THAP_NHAT) * t.SOLUONG AS TIEN_CHENH_LECH
FROM THAU_TINH t
JOIN NHOM_CO_NHIEU_GIA n
  ON t.TEN_HOAT_CHAT = n.TEN_HOAT_CHAT AND t.SO_DANG_KY = n.SO_DANG_KY
 AND t.HAM_LUONG = n.HAM_LUONG AND t.MADUONGDUNG = n.MADUONGDUNG
 AND t.NHOM_TCKT = n.NHOM_TCKT AND t.DON_VI_TINH = n.DON_VI_TINH
WHERE t.GIA > n.GIA_THAP_NHAT""",
    AnalysisMode.COMPARE: """\
SELECT TEN_HOAT_CHAT, HAM_LUONG, SO_DANG_KY, NHOM_TCKT,
       COUNT(DISTINCT CO_SO_KCB) AS SO_LUONG_CS,
       MIN(GIA) AS GIA_MIN,
       MAX(GIA) AS GIA_MAX,
       GROUP_CONCAT(CO_SO_KCB + ': ' + GIA) AS CHI_TIET_GIA
FROM THAU_TINH
GROUP BY TEN_HOAT_CHAT, HAM_LUONG, SO_DANG_KY, NHOM_TCKT
HAVING COUNT(DISTINCT CO_SO_KCB) > 1
ORDER BY TEN_HOAT_CHAT""",
}


def reference_query(mode: AnalysisMode | str) -> str:
    return REFERENCE_QUERIES[AnalysisMode.parse(mode)]
