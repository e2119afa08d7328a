"""
Word-level diff for revision metadata.
Produces the `{"added", "removed", "value"}` chunk list stored under
change_metadata["diff_data"].
"""
import difflib
import re
from typing import List, Optional

# Words and the whitespace between them are separate tokens so the chunks
# concatenate back into the original strings.
_TOKEN = re.compile(r"\s+|[^\s]+")


def tokenize(text: Optional[str]) -> List[str]:
    return _TOKEN.findall(text or "")


def _chunk(tokens: List[str], added: bool = False, removed: bool = False) -> dict:
    return {"added": added, "removed": removed, "value": "".join(tokens)}


def word_diff(original: Optional[str], modified: Optional[str]) -> List[dict]:
    old, new = tokenize(original), tokenize(modified)
    matcher = difflib.SequenceMatcher(a=old, b=new, autojunk=False)
    chunks: List[dict] = []
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag == "equal":
            chunks.append(_chunk(old[i1:i2]))
            continue
        if tag in ("delete", "replace"):
            chunks.append(_chunk(old[i1:i2], removed=True))
        if tag in ("insert", "replace"):
            chunks.append(_chunk(new[j1:j2], added=True))
    return chunks


def original_text(chunks: List[dict]) -> str:
    return "".join(c["value"] for c in chunks if not c["added"])


def modified_text(chunks: List[dict]) -> str:
    return "".join(c["value"] for c in chunks if not c["removed"])
