"""
Tests - Individual process export (xlsx / csv).
"""

import csv
import io

from openpyxl import load_workbook

from conftest import create_individual_process, create_person


def _seed(client, main_process):
    person = create_person(client, given_names="Maria", surname="Souza", cpf="52998224725")
    return create_individual_process(client, main_process["id"], person["id"],
                                     protocol_number="PROT-9")


class TestExport:
    def test_xlsx(self, client, main_process):
        _seed(client, main_process)
        res = client.get("/api/v1/exports/individual-processes.xlsx")
        assert res.status_code == 200
        assert res.mimetype.startswith("application/vnd.openxmlformats")
        assert "individual_processes_" in res.headers["Content-Disposition"]

        ws = load_workbook(io.BytesIO(res.data)).active
        assert ws["A1"].value == "Individual Processes"
        assert ws["A4"].value == "Reference"
        assert ws["A5"].value == "MP-001"
        assert ws["C5"].value == "529.982.247-25"

    def test_csv(self, client, main_process):
        _seed(client, main_process)
        res = client.get("/api/v1/exports/individual-processes.csv")
        assert res.status_code == 200
        assert res.mimetype == "text/csv"
        rows = list(csv.reader(io.StringIO(res.get_data(as_text=True))))
        assert rows[0][:3] == ["Reference", "Person", "CPF"]
        assert rows[1][0] == "MP-001"
        assert "PROT-9" in rows[1]

    def test_filter_by_main_process(self, client, main_process):
        _seed(client, main_process)
        res = client.get("/api/v1/exports/individual-processes.csv?main_process_id=9999")
        assert len(list(csv.reader(io.StringIO(res.get_data(as_text=True))))) == 1
        assert client.get("/api/v1/exports/individual-processes.csv?main_process_id=x").status_code == 422
