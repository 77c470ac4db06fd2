# pipeline/ppt_structure_parser.py
from dataclasses import dataclass, field
from typing import List, Optional, Union

from lxml import etree


def local_name(element) -> str:
    """Tag name without namespace; comments and processing instructions give ''"""
    if not isinstance(element.tag, str):
        return ""
    return etree.QName(element).localname


def child_elements(element, name: str):
    return [child for child in element if local_name(child) == name]


def first_child(element, name: str):
    for child in element:
        if local_name(child) == name:
            return child
    return None


def iter_descendants(element, name: str):
    for node in element.iter():
        if node is not element and local_name(node) == name:
            yield node


def _attribute_by_local_name(element, name: str) -> Optional[str]:
    for key, value in element.attrib.items():
        if etree.QName(key).localname == name:
            return value
    return None


@dataclass
class TextRun:
    element: etree._Element  # the text node of the run
    text: str
    has_hyperlink: bool = False
    hyperlink_id: Optional[str] = None


@dataclass(frozen=True)
class LineBreak:
    element: etree._Element
    position: int


@dataclass(frozen=True)
class FieldText:
    """Dynamic field (slide number, date). Contributes to full_text only."""
    element: etree._Element
    text: str
    field_type: Optional[str] = None


ParagraphItem = Union[TextRun, LineBreak, FieldText]


@dataclass
class ParsedParagraph:
    element: etree._Element
    items: List[ParagraphItem] = field(default_factory=list)
    full_text: str = ""

    @property
    def runs(self) -> List[TextRun]:
        return [item for item in self.items if isinstance(item, TextRun)]

    @property
    def line_breaks(self) -> List[LineBreak]:
        return [item for item in self.items if isinstance(item, LineBreak)]

    @property
    def fields(self) -> List[FieldText]:
        return [item for item in self.items if isinstance(item, FieldText)]

    def refresh_text(self):
        parts = []
        for item in self.items:
            parts.append("\n" if isinstance(item, LineBreak) else item.text)
        self.full_text = "".join(parts)


@dataclass
class ShapeBounds:
    x: int
    y: int
    cx: int
    cy: int


@dataclass
class ParsedShape:
    element: etree._Element
    shape_id: Optional[str]
    name: Optional[str]
    paragraphs: List[ParsedParagraph]
    bounds: Optional[ShapeBounds] = None
    ext_element: Optional[etree._Element] = None

    @property
    def text(self) -> str:
        return "\n".join(p.full_text for p in self.paragraphs)


@dataclass
class TableCell:
    element: etree._Element
    row: int
    column: int
    paragraphs: List[ParsedParagraph]
    text: str


@dataclass
class ParsedTable:
    element: etree._Element
    rows: List[List[TableCell]]


@dataclass
class ParagraphTask:
    part_name: str
    original_text: str
    paragraph: ParsedParagraph
    shape: Optional[ParsedShape] = None


@dataclass
class TableRowTask:
    part_name: str
    original_text: str
    cells: List[TableCell]


TranslationTask = Union[ParagraphTask, TableRowTask]

TABLE_CELL_SEPARATOR = " | "


def parse_paragraph(p_element) -> ParsedParagraph:
    """Turn an <a:p> element into runs, breaks and fields in document order"""
    paragraph = ParsedParagraph(element=p_element)
    position = 0

    for child in p_element:
        name = local_name(child)
        if name == "r":
            t_element = first_child(child, "t")
            if t_element is None:
                continue
            text = t_element.text or ""
            hyperlink_id = None
            r_pr = first_child(child, "rPr")
            if r_pr is not None:
                link = first_child(r_pr, "hlinkClick")
                if link is not None:
                    hyperlink_id = _attribute_by_local_name(link, "id") or ""
            paragraph.items.append(TextRun(
                element=t_element,
                text=text,
                has_hyperlink=hyperlink_id is not None,
                hyperlink_id=hyperlink_id or None,
            ))
            position += len(text)
        elif name == "br":
            paragraph.items.append(LineBreak(element=child, position=position))
            position += 1
        elif name == "fld":
            t_element = first_child(child, "t")
            text = t_element.text if t_element is not None and t_element.text else ""
            paragraph.items.append(FieldText(element=child, text=text, field_type=child.get("type")))
            position += len(text)

    paragraph.refresh_text()
    return paragraph


def parse_text_body(tx_body, keep_empty=False) -> List[ParsedParagraph]:
    paragraphs = []
    for p_element in child_elements(tx_body, "p"):
        paragraph = parse_paragraph(p_element)
        if not keep_empty and not paragraph.runs and not paragraph.line_breaks:
            continue
        paragraphs.append(paragraph)
    return paragraphs


def read_shape_bounds(shape_element):
    """Return (bounds, ext element) from spPr/xfrm, or (None, None)"""
    sp_pr = first_child(shape_element, "spPr")
    if sp_pr is None:
        return None, None
    xfrm = first_child(sp_pr, "xfrm")
    if xfrm is None:
        return None, None
    off = first_child(xfrm, "off")
    ext = first_child(xfrm, "ext")
    if off is None or ext is None:
        return None, None
    try:
        bounds = ShapeBounds(
            x=int(off.get("x", "0")),
            y=int(off.get("y", "0")),
            cx=int(ext.get("cx", "0")),
            cy=int(ext.get("cy", "0")),
        )
    except ValueError:
        return None, None
    return bounds, ext


def extract_shapes(root) -> List[ParsedShape]:
    """Every text-bearing <sp> in the part, including ones nested in groups"""
    shapes = []
    for shape_element in iter_descendants(root, "sp"):
        tx_body = first_child(shape_element, "txBody")
        if tx_body is None:
            continue
        paragraphs = parse_text_body(tx_body)
        if not paragraphs:
            continue

        c_nv_pr = None
        nv_sp_pr = first_child(shape_element, "nvSpPr")
        if nv_sp_pr is not None:
            c_nv_pr = first_child(nv_sp_pr, "cNvPr")

        bounds, ext = read_shape_bounds(shape_element)
        shapes.append(ParsedShape(
            element=shape_element,
            shape_id=c_nv_pr.get("id") if c_nv_pr is not None else None,
            name=c_nv_pr.get("name") if c_nv_pr is not None else None,
            paragraphs=paragraphs,
            bounds=bounds,
            ext_element=ext,
        ))
    return shapes


def extract_tables(root) -> List[ParsedTable]:
    tables = []
    for tbl in iter_descendants(root, "tbl"):
        rows = []
        for row_index, tr in enumerate(child_elements(tbl, "tr")):
            cells = []
            for column_index, tc in enumerate(child_elements(tr, "tc")):
                tx_body = first_child(tc, "txBody")
                paragraphs = parse_text_body(tx_body) if tx_body is not None else []
                text = " ".join(p.full_text for p in paragraphs).strip()
                cells.append(TableCell(
                    element=tc,
                    row=row_index,
                    column=column_index,
                    paragraphs=paragraphs,
                    text=text,
                ))
            rows.append(cells)
        tables.append(ParsedTable(element=tbl, rows=rows))
    return tables


def build_translation_tasks(part_name, shapes, tables) -> List[TranslationTask]:
    """Paragraph tasks for shapes, then one task per non-empty table row"""
    tasks: List[TranslationTask] = []
    for shape in shapes:
        for paragraph in shape.paragraphs:
            if not paragraph.runs or not paragraph.full_text.strip():
                continue
            tasks.append(ParagraphTask(
                part_name=part_name,
                original_text=paragraph.full_text,
                paragraph=paragraph,
                shape=shape,
            ))

    for table in tables:
        for cells in table.rows:
            if not any(cell.text for cell in cells):
                continue
            tasks.append(TableRowTask(
                part_name=part_name,
                original_text=TABLE_CELL_SEPARATOR.join(cell.text for cell in cells),
                cells=cells,
            ))
    return tasks
