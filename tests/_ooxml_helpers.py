"""Builders for small OOXML packages and fake translation backends used by the tests."""
from io import BytesIO
from zipfile import ZIP_DEFLATED, ZipFile

from lxml import etree

from llmWrapper.llm_wrapper import TranslationBackend, TranslationServiceError
from textProcessing.batch_translator import RetryPolicy

A_NS = "http://schemas.openxmlformats.org/drawingml/2006/main"
P_NS = "http://schemas.openxmlformats.org/presentationml/2006/main"
R_NS = "http://schemas.openxmlformats.org/officeDocument/2006/relationships"
NS = {"a": A_NS, "p": P_NS, "r": R_NS}

CONTENT_TYPES = (
    '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
    '<Types xmlns="http://schemas.openxmlformats.org/package/2006/content-types">'
    '<Default Extension="xml" ContentType="application/xml"/>'
    '</Types>'
)


def run(text, hyperlink=None):
    r_pr = '<a:rPr lang="en-US"/>'
    if hyperlink:
        r_pr = f'<a:rPr lang="en-US"><a:hlinkClick r:id="{hyperlink}"/></a:rPr>'
    return f'<a:r>{r_pr}<a:t>{text}</a:t></a:r>'


def paragraph(*children):
    return f'<a:p>{"".join(children)}</a:p>'


def shape(paragraphs, shape_id=2, name="TextBox 1", x=0, y=0, cx=3000000, cy=1000000, with_xfrm=True):
    xfrm = f'<a:xfrm><a:off x="{x}" y="{y}"/><a:ext cx="{cx}" cy="{cy}"/></a:xfrm>' if with_xfrm else ''
    return (
        f'<p:sp><p:nvSpPr><p:cNvPr id="{shape_id}" name="{name}"/><p:cNvSpPr txBox="1"/><p:nvPr/></p:nvSpPr>'
        f'<p:spPr>{xfrm}</p:spPr>'
        f'<p:txBody><a:bodyPr/><a:lstStyle/>{"".join(paragraphs)}</p:txBody></p:sp>'
    )


def table(rows):
    """rows: list of lists of cell texts"""
    trs = []
    for cells in rows:
        tcs = "".join(
            f'<a:tc><a:txBody><a:bodyPr/><a:p>{run(text) if text else ""}</a:p></a:txBody><a:tcPr/></a:tc>'
            for text in cells
        )
        trs.append(f'<a:tr h="370840">{tcs}</a:tr>')
    return (
        '<p:graphicFrame><p:nvGraphicFramePr><p:cNvPr id="9" name="Table 1"/><p:cNvGraphicFramePr/><p:nvPr/>'
        '</p:nvGraphicFramePr><p:xfrm><a:off x="0" y="0"/><a:ext cx="6000000" cy="740000"/></p:xfrm>'
        '<a:graphic><a:graphicData uri="http://schemas.openxmlformats.org/drawingml/2006/table">'
        f'<a:tbl><a:tblGrid/>{"".join(trs)}</a:tbl></a:graphicData></a:graphic></p:graphicFrame>'
    )


def slide_xml(*shapes):
    return (
        '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
        f'<p:sld xmlns:a="{A_NS}" xmlns:p="{P_NS}" xmlns:r="{R_NS}">'
        f'<p:cSld><p:spTree><p:nvGrpSpPr><p:cNvPr id="1" name=""/><p:cNvGrpSpPr/><p:nvPr/></p:nvGrpSpPr>'
        f'<p:grpSpPr/>{"".join(shapes)}</p:spTree></p:cSld></p:sld>'
    )


def parse_xml(xml):
    return etree.fromstring(xml.encode("utf-8") if isinstance(xml, str) else xml)


def make_package(parts):
    """Zip a {name: str|bytes} mapping into package bytes"""
    buffer = BytesIO()
    with ZipFile(buffer, "w", ZIP_DEFLATED) as zf:
        zf.writestr("[Content_Types].xml", CONTENT_TYPES)
        for name, content in parts.items():
            zf.writestr(name, content)
    return buffer.getvalue()


def make_pptx(*slides, extra_parts=None):
    parts = {f"ppt/slides/slide{i}.xml": xml for i, xml in enumerate(slides, start=1)}
    parts["ppt/media/image1.png"] = b"\x89PNG\r\n\x1a\n-binary-"
    parts.update(extra_parts or {})
    return make_package(parts)


def read_part(data, name):
    with ZipFile(BytesIO(data)) as zf:
        return zf.read(name)


def texts_of(root):
    return [t.text for t in root.iter(f"{{{A_NS}}}t")]


def no_wait_policy(**kwargs):
    delays = []
    policy = RetryPolicy(sleep=delays.append, **kwargs)
    return policy, delays


class EchoBackend(TranslationBackend):
    """Returns every text unchanged plus a suffix and records each call"""

    def __init__(self, suffix=""):
        self.suffix = suffix
        self.batch_calls = []
        self.single_calls = []

    def translate_text(self, text, target_lang, context="", glossary=None, source_lang=None):
        self.single_calls.append((text, glossary))
        return f"{text}{self.suffix}"

    def translate_batch(self, texts, target_lang, context="", glossary=None, source_lang=None):
        self.batch_calls.append((list(texts), glossary))
        return [f"{text}{self.suffix}" for text in texts]


class MappingBackend(EchoBackend):
    """Looks translations up in a dict, falling back to the original text"""

    def __init__(self, mapping):
        super().__init__()
        self.mapping = mapping

    def translate_text(self, text, target_lang, context="", glossary=None, source_lang=None):
        self.single_calls.append((text, glossary))
        return self.mapping.get(text, text)

    def translate_batch(self, texts, target_lang, context="", glossary=None, source_lang=None):
        self.batch_calls.append((list(texts), glossary))
        return [self.mapping.get(text, text) for text in texts]


class ShortBatchBackend(EchoBackend):
    """Batch answers are always one item short"""

    def translate_batch(self, texts, target_lang, context="", glossary=None, source_lang=None):
        self.batch_calls.append((list(texts), glossary))
        return [f"{text}{self.suffix}" for text in texts][:-1]


class FailingBackend(EchoBackend):
    """Every call raises TranslationServiceError with the given status"""

    def __init__(self, status_code=None, fail_single=True):
        super().__init__()
        self.status_code = status_code
        self.fail_single = fail_single

    def translate_text(self, text, target_lang, context="", glossary=None, source_lang=None):
        self.single_calls.append((text, glossary))
        if self.fail_single:
            raise TranslationServiceError("single call failed", status_code=self.status_code)
        return f"{text}!"

    def translate_batch(self, texts, target_lang, context="", glossary=None, source_lang=None):
        self.batch_calls.append((list(texts), glossary))
        raise TranslationServiceError(f"batch failed with {self.status_code}", status_code=self.status_code)
