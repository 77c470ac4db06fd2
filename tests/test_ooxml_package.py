"""Tests for reading and repacking OOXML zip containers."""
import struct
from io import BytesIO
from zipfile import ZIP_DEFLATED, ZipFile

import pytest

from _ooxml_helpers import make_package

from pipeline.ooxml_package import PPTX_PART_PATTERNS, OoxmlPackage, PackageError


class TestPackage:
    def test_parts_in_natural_order(self):
        data = make_package({
            "ppt/slides/slide10.xml": "<sld/>",
            "ppt/slides/slide2.xml": "<sld/>",
            "ppt/slides/slide1.xml": "<sld/>",
            "ppt/slides/_rels/slide1.xml.rels": "<Relationships/>",
            "ppt/notesSlides/notesSlide1.xml": "<notes/>",
        })
        package = OoxmlPackage(data)

        assert package.list_parts(PPTX_PART_PATTERNS) == [
            "ppt/notesSlides/notesSlide1.xml",
            "ppt/slides/slide1.xml",
            "ppt/slides/slide2.xml",
            "ppt/slides/slide10.xml",
        ]

    def test_untouched_entries_pass_through(self):
        image = bytes(range(256))
        data = make_package({"ppt/slides/slide1.xml": "<sld/>", "ppt/media/image1.png": image})
        package = OoxmlPackage(data)

        package.write_text("ppt/slides/slide1.xml", "<sld>changed</sld>")
        out = package.to_bytes()

        with ZipFile(BytesIO(out)) as zf:
            assert zf.namelist() == ["[Content_Types].xml", "ppt/slides/slide1.xml", "ppt/media/image1.png"]
            assert zf.read("ppt/media/image1.png") == image
            assert zf.read("ppt/slides/slide1.xml") == b"<sld>changed</sld>"

    def test_missing_or_malformed_part(self):
        package = OoxmlPackage(make_package({"ppt/slides/slide1.xml": "<sld><broken></sld>"}))
        assert package.read_bytes("ppt/slides/slide9.xml") is None
        assert package.read_xml("ppt/slides/slide1.xml") is None

    def test_corrupt_container(self):
        with pytest.raises(PackageError):
            OoxmlPackage(b"this is not a zip file")

    def test_corrupt_deflate_stream_is_skipped(self):
        buffer = BytesIO()
        with ZipFile(buffer, "w", ZIP_DEFLATED) as zf:
            body = " ".join(f"word{i * 7919 % 10007}" for i in range(400))
            zf.writestr("ppt/slides/slide1.xml", f"<sld>{body}</sld>")
            zf.writestr("ppt/slides/slide2.xml", "<sld>intact</sld>")
            info = zf.getinfo("ppt/slides/slide1.xml")
        data = bytearray(buffer.getvalue())
        name_len, extra_len = struct.unpack("<HH", data[info.header_offset + 26:info.header_offset + 30])
        start = info.header_offset + 30 + name_len + extra_len
        middle = start + info.compress_size // 2 - 10
        for i in range(middle, middle + 20):
            data[i] ^= 0xFF

        package = OoxmlPackage(bytes(data))

        assert package.read_xml("ppt/slides/slide1.xml") is None
        assert package.read_text("ppt/slides/slide2.xml") == "<sld>intact</sld>"
