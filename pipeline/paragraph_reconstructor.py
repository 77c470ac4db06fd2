# pipeline/paragraph_reconstructor.py
"""Write translated strings back into parsed paragraphs and table rows.

Multi-run paragraphs are filled by splitting the translation proportionally to
each run's share of the original text. This keeps every character of the
translation but does not look for word boundaries, so a word can straddle two
runs (and therefore two formats) after reconstruction.
"""
from typing import List

from .ppt_structure_parser import FieldText, LineBreak, ParsedParagraph, TableCell, TextRun

XML_SPACE = "{http://www.w3.org/XML/1998/namespace}space"


def split_proportionally(text: str, lengths: List[int]) -> List[str]:
    """Split text into len(lengths) consecutive pieces sized by each length's share.

    The pieces always concatenate back to ``text``; rounding leftovers go to the
    last piece.
    """
    count = len(lengths)
    if count == 0:
        return []
    total = sum(lengths)
    if total <= 0:
        return [text] + [""] * (count - 1)

    pieces = []
    cursor = 0
    for index, length in enumerate(lengths):
        if index == count - 1:
            pieces.append(text[cursor:])
            break
        share = int(len(text) * length / total + 0.5)
        end = min(cursor + share, len(text))
        pieces.append(text[cursor:end])
        cursor = end
    return pieces


def _set_run_text(run: TextRun, text: str, preserve_space: bool):
    run.element.text = text
    run.text = text
    if preserve_space and text != text.strip():
        run.element.set(XML_SPACE, "preserve")


def _distribute(runs: List[TextRun], text: str, preserve_space: bool):
    pieces = split_proportionally(text, [len(run.text) for run in runs])
    for run, piece in zip(runs, pieces):
        _set_run_text(run, piece, preserve_space)


def _anchor_groups(paragraph: ParsedParagraph):
    """Runs grouped between breaks/fields, plus each separator's literal text and original offset"""
    groups = [[]]
    anchors = []
    offset = 0
    for item in paragraph.items:
        if isinstance(item, TextRun):
            groups[-1].append(item)
            offset += len(item.text)
        elif isinstance(item, LineBreak):
            anchors.append(("\n", offset))
            groups.append([])
            offset += 1
        elif isinstance(item, FieldText) and item.text:
            anchors.append((item.text, offset))
            groups.append([])
            offset += len(item.text)
    return groups, anchors


def _find_anchor(text, anchor, cursor, expected):
    """Occurrence of anchor at or after cursor that is closest to the expected offset"""
    best = -1
    index = text.find(anchor, cursor)
    while index >= 0:
        if best < 0 or abs(index - expected) < abs(best - expected):
            best = index
        elif index > expected:
            break
        index = text.find(anchor, index + 1)
    return best


def _split_at_anchors(paragraph: ParsedParagraph, translated_text: str):
    """Pair each run group with its slice of the translation, or None if a separator is missing"""
    groups, anchors = _anchor_groups(paragraph)
    segments = []
    cursor = 0
    original_length = len(paragraph.full_text) or 1
    for anchor, offset in anchors:
        expected = int(offset / original_length * len(translated_text))
        index = _find_anchor(translated_text, anchor, cursor, expected)
        if index < 0:
            return None
        segments.append(translated_text[cursor:index])
        cursor = index + len(anchor)
    segments.append(translated_text[cursor:])

    # Text that landed between two adjacent separators goes to a neighbouring group
    pairs = []
    carry = ""
    for group, segment in zip(groups, segments):
        if not group:
            if pairs:
                pairs[-1][1] += segment
            else:
                carry += segment
            continue
        pairs.append([group, carry + segment])
        carry = ""
    return pairs


def reconstruct_paragraph(paragraph: ParsedParagraph, translated_text: str, preserve_space=False) -> bool:
    """Write translated_text into the paragraph's runs. Returns False if it has no runs."""
    runs = paragraph.runs
    if not runs:
        return False

    if len(runs) == 1 and len(paragraph.items) == 1:
        _set_run_text(runs[0], translated_text, preserve_space)
    else:
        pairs = _split_at_anchors(paragraph, translated_text)
        if pairs is None:
            flat_text = translated_text.replace("\n", " ") if paragraph.line_breaks else translated_text
            _distribute(runs, flat_text, preserve_space)
        else:
            for group, segment in pairs:
                _distribute(group, segment, preserve_space)

    paragraph.refresh_text()
    return True


def reconstruct_cell(cell: TableCell, translated_text: str) -> bool:
    paragraphs = [p for p in cell.paragraphs if p.runs]
    if not paragraphs:
        return False
    if len(paragraphs) == 1:
        reconstruct_paragraph(paragraphs[0], translated_text)
    else:
        pieces = split_proportionally(translated_text, [len(p.full_text) for p in paragraphs])
        for paragraph, piece in zip(paragraphs, pieces):
            reconstruct_paragraph(paragraph, piece.strip())
    cell.text = " ".join(p.full_text for p in cell.paragraphs).strip()
    return True


def reconstruct_table_row(cells: List[TableCell], translated_text: str) -> int:
    """Split a translated ``a | b | c`` row back onto its cells in column order.

    Cells without a corresponding (non-empty) segment are left untouched.
    Cells whose own text contains ``|`` take back as many segments as they
    held pipes, as long as the translation kept every pipe. Otherwise
    surplus segments are folded into the last cell.
    """
    if not cells:
        return 0
    segments = [segment.strip() for segment in translated_text.split("|")]
    pipe_counts = [cell.text.count("|") for cell in cells]
    if any(pipe_counts) and len(segments) == len(cells) + sum(pipe_counts):
        grouped, cursor = [], 0
        for count in pipe_counts:
            grouped.append(" | ".join(segments[cursor:cursor + count + 1]))
            cursor += count + 1
        segments = grouped
    elif len(segments) > len(cells):
        # pipe count changed in translation: columns after the first lost pipe may shift
        head = segments[:len(cells) - 1]
        tail = " | ".join(s for s in segments[len(cells) - 1:] if s)
        segments = head + [tail]

    updated = 0
    for cell, segment in zip(cells, segments):
        if not segment or not cell.text:
            continue
        if reconstruct_cell(cell, segment):
            updated += 1
    return updated
