"""
CSV export layout.
"""

import csv
import io
from datetime import date

from conftest import make_state
from giftdesk.records import Client, GiftRecord
from giftdesk.services.export_service import (
    CSV_HEADER,
    export_csv,
    export_csv_bytes,
    export_filename,
)


def _parse(text):
    assert text.startswith("\ufeff")
    return list(csv.reader(io.StringIO(text[1:])))


class TestExportCsv:

    def test_header_and_bom(self):
        text = export_csv([])
        assert text == "\ufeff" + ",".join(CSV_HEADER)

    def test_one_row_per_gift_line(self):
        clients = make_state().clients
        rows = _parse(export_csv(clients))

        assert rows[0] == list(CSV_HEADER)
        assert len(rows) - 1 == sum(len(c.gift_history) for c in clients)

    def test_no_is_client_index_repeated_per_line(self):
        clients = make_state().clients  # kim-2 (two lines), lee-1, kim-1
        rows = _parse(export_csv(clients))[1:]

        assert [r[0] for r in rows] == ["1", "1", "2", "3"]
        assert rows[0][2] == "마바물산"
        assert rows[1][9] == "기타"

    def test_note_missing_is_empty(self):
        clients = make_state().clients
        rows = _parse(export_csv(clients))[1:]

        by_item = {r[9]: r for r in rows}
        assert by_item["한우 세트"][13] == ""
        assert by_item["홍삼 세트"][13] == "경비실 맡김"

    def test_values_with_commas_are_quoted(self):
        client = Client(
            id="c1",
            company="가나, 다라",
            address="서울 \"본관\"",
            gift_history=(GiftRecord(id="g1", year=2026, item_name="홍삼", quantity=2, price=20000),),
        )
        rows = _parse(export_csv([client]))

        assert rows[1][2] == "가나, 다라"
        assert rows[1][7] == "서울 \"본관\""
        assert rows[1][10:13] == ["2", "20000", "준비중"]

    def test_client_without_lines_produces_no_rows(self):
        rows = _parse(export_csv([Client(id="c1", company="빈 거래처")]))
        assert rows == [list(CSV_HEADER)]

    def test_bytes_are_utf8_with_bom(self):
        data = export_csv_bytes([])
        assert data.startswith(b"\xef\xbb\xbf")
        assert data.decode("utf-8").endswith("비고")


def test_filename():
    assert export_filename(date(2026, 9, 15)) == "gift_list_export_2026-09-15.csv"
    assert export_filename().startswith("gift_list_export_")
