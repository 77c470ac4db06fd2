"""End-to-end tests for translating cells, drawings and sheet names of .xlsx files."""
from io import BytesIO
from zipfile import ZipFile

import pytest
from lxml import etree
from openpyxl import Workbook, load_workbook

from _ooxml_helpers import MappingBackend, make_package, no_wait_policy, read_part

from pipeline.excel_translation_pipeline import (
    list_sheet_names, rename_sheet_references, sanitize_sheet_name, translate_excel_content
)
from textProcessing.batch_translator import BatchTranslator

MAIN_NS = "http://schemas.openxmlformats.org/spreadsheetml/2006/main"

DRAWING = (
    '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
    '<xdr:wsDr xmlns:xdr="http://schemas.openxmlformats.org/drawingml/2006/spreadsheetDrawing" '
    'xmlns:a="http://schemas.openxmlformats.org/drawingml/2006/main">'
    '<xdr:twoCellAnchor><xdr:sp><xdr:txBody><a:bodyPr/>'
    '<a:p><a:r><a:t>Quarterly results</a:t></a:r></a:p>'
    '</xdr:txBody></xdr:sp></xdr:twoCellAnchor></xdr:wsDr>'
)

TRANSLATIONS = {
    "Hello world": "Bonjour le monde",
    "Total revenue": "Chiffre d'affaires",
    "Quarterly results": "Résultats trimestriels",
    "Summary": "Résumé",
    "Data": "Données",
}


def _add_parts(data, parts):
    buffer = BytesIO()
    with ZipFile(BytesIO(data)) as src, ZipFile(buffer, "w") as dst:
        for info in src.infolist():
            dst.writestr(info, src.read(info.filename))
        for name, content in parts.items():
            dst.writestr(name, content)
    return buffer.getvalue()


def _workbook_bytes():
    wb = Workbook()
    summary = wb.active
    summary.title = "Summary"
    summary["A1"] = "Hello world"
    summary["A2"] = 42
    summary["A3"] = "Hello world"
    data = wb.create_sheet("Data")
    data["A1"] = "Total revenue"
    data["B1"] = "=Summary!A2*2"
    data["C1"] = "ABC123"

    buffer = BytesIO()
    wb.save(buffer)
    return _add_parts(buffer.getvalue(), {"xl/drawings/drawing1.xml": DRAWING})


def _translator_factory(backend):
    def make_batch_translator(part_count):
        policy, _ = no_wait_policy()
        return BatchTranslator(backend, "fr", retry_policy=policy)
    return make_batch_translator


def _translate(data, mapping=TRANSLATIONS, **kwargs):
    backend = MappingBackend(mapping)
    result = translate_excel_content(data, _translator_factory(backend), "French", "English", **kwargs)
    return result, backend


class TestWorkbookTranslation:
    def test_cells_shapes_and_sheet_names(self):
        result, backend = _translate(_workbook_bytes())

        wb = load_workbook(BytesIO(result))
        assert wb.sheetnames == ["Résumé", "Données"]
        summary, data = wb["Résumé"], wb["Données"]
        assert summary["A1"].value == "Bonjour le monde"
        assert summary["A2"].value == 42
        assert summary["A3"].value == "Bonjour le monde"
        assert data["A1"].value == "Chiffre d'affaires"
        assert data["C1"].value == "ABC123"
        assert data["B1"].value == "='Résumé'!A2*2"

        drawing = read_part(result, "xl/drawings/drawing1.xml").decode("utf-8")
        assert "Résultats trimestriels" in drawing

    def test_sheet_names_use_their_own_batch(self):
        _, backend = _translate(_workbook_bytes())

        assert backend.batch_calls[0][0] == ["Hello world", "Total revenue", "Quarterly results"]
        assert backend.batch_calls[1][0] == ["Summary", "Data"]

    def test_selected_sheets_only(self):
        result, _ = _translate(_workbook_bytes(), selected_sheets=["Data"])

        wb = load_workbook(BytesIO(result))
        assert wb.sheetnames == ["Summary", "Données"]
        assert wb["Summary"]["A1"].value == "Hello world"
        assert wb["Données"]["A1"].value == "Chiffre d'affaires"

    def test_unknown_selection_is_rejected(self):
        with pytest.raises(ValueError, match="No sheets selected"):
            _translate(_workbook_bytes(), selected_sheets=["Missing"])

    def test_rename_to_existing_name_is_skipped(self):
        mapping = dict(TRANSLATIONS, Summary="Data")
        result, _ = _translate(_workbook_bytes(), mapping=mapping)

        assert load_workbook(BytesIO(result)).sheetnames == ["Summary", "Données"]

    def test_list_sheet_names(self):
        assert list_sheet_names(_workbook_bytes()) == ["Summary", "Data"]


class TestRawParts:
    """Inline strings, rich shared strings and defined names in a hand-written workbook"""

    def _package(self):
        return make_package({
            "xl/workbook.xml": (
                f'<workbook xmlns="{MAIN_NS}" '
                'xmlns:r="http://schemas.openxmlformats.org/officeDocument/2006/relationships">'
                '<sheets><sheet name="Totals" sheetId="1" r:id="rId1"/></sheets>'
                '<definedNames><definedName name="Range">Totals!$A$1:$A$3</definedName></definedNames>'
                '</workbook>'
            ),
            "xl/_rels/workbook.xml.rels": (
                '<Relationships xmlns="http://schemas.openxmlformats.org/package/2006/relationships">'
                '<Relationship Id="rId1" Target="worksheets/sheet1.xml" '
                'Type="http://schemas.openxmlformats.org/officeDocument/2006/relationships/worksheet"/>'
                '</Relationships>'
            ),
            "xl/worksheets/sheet1.xml": (
                f'<worksheet xmlns="{MAIN_NS}"><sheetData><row r="1">'
                '<c r="A1" t="s"><v>0</v></c>'
                '<c r="B1" t="inlineStr"><is><t> Good morning</t></is></c>'
                '</row></sheetData></worksheet>'
            ),
            "xl/sharedStrings.xml": (
                f'<sst xmlns="{MAIN_NS}" count="1" uniqueCount="1"><si>'
                '<r><rPr><b/></rPr><t xml:space="preserve">Big </t></r>'
                '<r><t>news today</t></r>'
                '<rPh sb="0" eb="1"><t>ビ</t></rPh>'
                '</si></sst>'
            ),
        })

    def test_rich_inline_and_defined_names(self):
        mapping = {"Big news today": "Grandes nouvelles", "Good morning": "Bonjour", "Totals": "Totaux"}
        result, _ = _translate(self._package(), mapping=mapping)

        ns = {"m": MAIN_NS}
        shared = etree.fromstring(read_part(result, "xl/sharedStrings.xml"))
        runs = shared.xpath("//m:si/m:r/m:t/text()", namespaces=ns)
        assert "".join(runs) == "Grandes nouvelles"
        assert shared.xpath("//m:si/m:r/m:rPr/m:b", namespaces=ns)
        assert shared.xpath("//m:rPh/m:t/text()", namespaces=ns) == ["ビ"]

        sheet = etree.fromstring(read_part(result, "xl/worksheets/sheet1.xml"))
        assert sheet.xpath("//m:is/m:t/text()", namespaces=ns) == [" Bonjour"]

        workbook = etree.fromstring(read_part(result, "xl/workbook.xml"))
        assert workbook.xpath("//m:sheet/@name", namespaces=ns) == ["Totaux"]
        assert workbook.xpath("//m:definedName/text()", namespaces=ns) == ["'Totaux'!$A$1:$A$3"]


class TestSheetNames:
    def test_sanitize(self):
        assert sanitize_sheet_name("Q1/Q2: [draft]") == "Q1-Q2- -draft-"
        assert sanitize_sheet_name("'quoted'") == "quoted"
        assert sanitize_sheet_name("x" * 40) == "x" * 31
        assert sanitize_sheet_name("???") == "---"
        assert sanitize_sheet_name("  ") == "Sheet"

    def test_reference_rewrite(self):
        renames = {"Data": "Données", "My Sheet": "Ma feuille"}
        formula = "SUM(Data!A1:A3)+'My Sheet'!B2+OtherData!C1"
        assert rename_sheet_references(formula, renames) == (
            "SUM('Données'!A1:A3)+'Ma feuille'!B2+OtherData!C1"
        )
