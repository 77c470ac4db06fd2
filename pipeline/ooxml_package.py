import re
import zlib
from io import BytesIO
from zipfile import ZipFile, BadZipFile, LargeZipFile

from lxml import etree

from config.log_config import app_logger

PPTX_PART_PATTERNS = (
    r"^ppt/slides/slide\d+\.xml$",
    r"^ppt/notesSlides/notesSlide\d+\.xml$",
    r"^ppt/slideLayouts/slideLayout\d+\.xml$",
    r"^ppt/slideMasters/slideMaster\d+\.xml$",
)
DRAWING_PART_PATTERNS = (r"^xl/drawings/drawing\d+\.xml$",)


class PackageError(ValueError):
    """The OOXML container itself cannot be read or written"""


def _natural_key(name):
    return [int(part) if part.isdigit() else part for part in re.split(r"(\d+)", name)]


class OoxmlPackage:
    """In-memory view of an OOXML zip package.

    Entries are read lazily from the original archive. Only entries written
    through ``write_text``/``write_xml`` are re-encoded on ``to_bytes``;
    everything else is copied byte-for-byte with its original zip metadata.
    """

    def __init__(self, data):
        try:
            self._zip = ZipFile(BytesIO(data))
        except (BadZipFile, LargeZipFile, OSError) as e:
            raise PackageError(f"Not a valid OOXML package: {e}") from e
        self._infos = self._zip.infolist()
        self._updated = {}

    @classmethod
    def from_file(cls, path):
        with open(path, 'rb') as f:
            return cls(f.read())

    def namelist(self):
        return [info.filename for info in self._infos]

    def has_part(self, name):
        return name in self._updated or any(info.filename == name for info in self._infos)

    def list_parts(self, patterns):
        """Entries whose names match any pattern, in natural order (slide2 before slide10)"""
        compiled = [re.compile(p) for p in patterns]
        names = [n for n in self.namelist() if any(c.match(n) for c in compiled)]
        return sorted(names, key=_natural_key)

    def read_bytes(self, name):
        if name in self._updated:
            return self._updated[name]
        try:
            return self._zip.read(name)
        except KeyError:
            return None
        except (BadZipFile, OSError, EOFError, zlib.error) as e:
            app_logger.warning(f"Skipping unreadable entry {name}: {e}")
            return None

    def read_text(self, name):
        data = self.read_bytes(name)
        if data is None:
            return None
        try:
            return data.decode('utf-8')
        except UnicodeDecodeError as e:
            app_logger.warning(f"Skipping entry {name} with invalid encoding: {e}")
            return None

    def read_xml(self, name):
        data = self.read_bytes(name)
        if data is None:
            return None
        try:
            return etree.fromstring(data)
        except etree.XMLSyntaxError as e:
            app_logger.warning(f"Skipping malformed XML part {name}: {e}")
            return None

    def write_bytes(self, name, data):
        self._updated[name] = data

    def write_text(self, name, text):
        self._updated[name] = text.encode('utf-8')

    def write_xml(self, name, root):
        self._updated[name] = etree.tostring(
            root, xml_declaration=True, encoding="UTF-8", standalone=True
        )

    @property
    def modified_parts(self):
        return sorted(self._updated, key=_natural_key)

    def to_bytes(self):
        """Repack the package, keeping entry order and metadata"""
        buffer = BytesIO()
        written = set()
        try:
            with ZipFile(buffer, 'w') as new_zip:
                for info in self._infos:
                    if info.filename in written:
                        continue
                    written.add(info.filename)
                    if info.filename in self._updated:
                        new_zip.writestr(info, self._updated[info.filename])
                    else:
                        new_zip.writestr(info, self._zip.read(info.filename))
                for name, data in self._updated.items():
                    if name not in written:
                        new_zip.writestr(name, data)
        except (BadZipFile, OSError, EOFError, ValueError, zlib.error) as e:
            raise PackageError(f"Failed to repack document: {e}") from e
        return buffer.getvalue()

    def close(self):
        self._zip.close()
