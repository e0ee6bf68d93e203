"""Library for splitting multi-document manifest files into one file per object.

Rendered chart templates often hold several objects in a single file
separated by `---` lines. Each object needs to be addressable on its own so
that hooks can be moved out of the resource set and steady state objects can
be labeled individually:

```python
from release_local.splitter import split_objects_in_file

for path in await split_objects_in_file(Path("output/chart/templates/app.yaml")):
    print(path)
```

The text of every document is written verbatim, including comments.
"""

from collections.abc import Iterable
import logging
from pathlib import Path

import aiofiles
from aiofiles.os import remove

from .exceptions import ParseException
from .manifest import decode_document

__all__ = [
    "split_objects_in_file",
    "split_documents",
]

_LOGGER = logging.getLogger(__name__)

RESOURCES_SEPARATOR = "---"
PART_FILE_PREFIX = "part"


def is_whitespace_or_comments(data: str) -> bool:
    """Return true if the data is empty, whitespace or comments only."""
    for line in data.splitlines():
        stripped = line.strip()
        if stripped and not stripped.startswith("#"):
            return False
    return True


def _segments(content: str) -> Iterable[str]:
    """Split the content on separator lines, keeping the text of each segment."""
    buf: list[str] = []
    for line in content.splitlines(keepends=True):
        if line.rstrip("\r\n") == RESOURCES_SEPARATOR:
            yield "".join(buf)
            buf = []
        else:
            buf.append(line)
    yield "".join(buf)


def split_documents(content: str, source: str = "<string>") -> list[str]:
    """Return the text of each non-empty document in the content.

    Segments which are blank, hold only comments or decode to an empty
    mapping are dropped.
    """
    documents = []
    for segment in _segments(content):
        if is_whitespace_or_comments(segment):
            continue
        try:
            doc = decode_document(segment, exc=ParseException)
        except ParseException as err:
            raise ParseException(
                f"Failed to parse the following YAML from file '{source}':\n"
                f"{segment}\n{err}"
            ) from err
        if not doc:
            continue
        if not segment.endswith("\n"):
            segment += "\n"
        documents.append(segment)
    return documents


def part_file_name(file_name: str, index: int, count: int) -> str:
    """Return the name of the file holding a document of a split file.

    Indexes are zero padded to the width of the count so that lexical order
    of the file names follows the order of the documents.
    """
    width = len(str(count))
    return f"{PART_FILE_PREFIX}{index:0{width}d}-{file_name}"


async def split_objects_in_file(path: Path) -> list[Path]:
    """Split a manifest file into a file per object.

    Returns the files in the order of the documents in the source file. A
    file holding a single object is returned unchanged, otherwise the source
    file is replaced by sibling part files.
    """
    try:
        async with aiofiles.open(path) as source_file:
            content = await source_file.read()
    except OSError as err:
        raise ParseException(f"Failed to open file {path}: {err}") from err

    documents = split_documents(content, source=str(path))
    if not documents:
        _LOGGER.debug("No objects found in %s", path)
        return []
    if len(documents) == 1:
        return [path]

    result = []
    for index, document in enumerate(documents, start=1):
        part_path = path.parent / part_file_name(path.name, index, len(documents))
        async with aiofiles.open(part_path, mode="w") as part_file:
            await part_file.write(document)
        result.append(part_path)
    await remove(path)
    _LOGGER.debug("Split %s into %d objects", path, len(result))
    return result
