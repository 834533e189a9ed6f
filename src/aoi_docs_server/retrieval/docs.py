"""
Function Documentation Extraction

Builds a structured description of one DSL function (syntax, description,
parameters, examples) out of the markdown passages that document it.

Extraction is heuristic and tolerant: each field is filled by the first
passage that yields it, and later passages only fill what is still missing.
"""

from __future__ import annotations

import re
from pathlib import PurePosixPath
from typing import Dict, List, Optional, Sequence

from pydantic import BaseModel, Field

from ..embeddings.models import Passage


MAX_DESCRIPTION_CHARS = 600
MAX_EXAMPLES = 3

_HEADING = re.compile(r"^\s{0,3}#{1,6}\s+")
_SYNTAX_HEADING = re.compile(r"^\s{0,3}#{1,6}\s+Syntax", re.IGNORECASE | re.MULTILINE)
_PARAMS_HEADING = re.compile(r"^\s{0,3}#{1,6}\s+Parameters", re.IGNORECASE | re.MULTILINE)
_DESC_HEADING = re.compile(r"^\s{0,3}#{1,6}\s+Description", re.IGNORECASE | re.MULTILINE)
_EXAMPLE_HEADING = re.compile(r"^\s{0,3}#{1,6}\s+Examples?", re.IGNORECASE)
_EXAMPLE_TITLE = re.compile(r"\bExamples?\b", re.IGNORECASE)
_FRONTMATTER = re.compile(r"^\s*---\n([\s\S]*?)\n---")
_FRONTMATTER_DESCRIPTION = re.compile(r"(?:^|\n)description:\s*(.+)", re.IGNORECASE)
_FENCED_BLOCK = re.compile(r"```[a-z]*\n([\s\S]*?)```")
_ANY_CALL = re.compile(r"\$[a-zA-Z]\w*\s*\[")
_TABLE_SEPARATOR = re.compile(r"^:?-{3,}")
_BULLET_PARAM = re.compile(r"^[*-]\s*(\w[\w-]*)\s*[:|-]\s*(.+)$")
_SECTION_SPLIT = re.compile(r"\n(?=\s{0,3}#{1,6}\s+)")

_DOC_ROOT_MARKERS = ("/website/", "/src/content/docs/")


class FunctionParameter(BaseModel):
    name: str
    description: Optional[str] = None
    type: Optional[str] = None
    required: Optional[bool] = None


class FunctionDocumentation(BaseModel):
    """Structured documentation for one `$function`."""

    function: str
    syntax: Optional[str] = None
    description: Optional[str] = None
    parameters: Optional[List[FunctionParameter]] = None
    examples: List[str] = Field(default_factory=list)
    sources: List[str] = Field(default_factory=list)
    confidence: float = 0.0

    @property
    def needs_parameter_details(self) -> bool:
        """True when no parameter carries a description."""
        return not self.parameters or all(not p.description for p in self.parameters)


# ---------------------------------------------------------------------
# Name & Path Helpers
# ---------------------------------------------------------------------

def relative_doc_path(path: Optional[str]) -> str:
    """
    Shorten an ingested file path for display.

    Paths under a `website/` checkout are made relative to it, paths under
    `src/content/docs/` keep that prefix, anything else is reduced to its
    file name.
    """
    if not path:
        return ""

    normalized = path.replace("\\", "/")
    website = normalized.find(_DOC_ROOT_MARKERS[0])
    if website != -1:
        return normalized[website + len(_DOC_ROOT_MARKERS[0]):]

    content_docs = normalized.find(_DOC_ROOT_MARKERS[1])
    if content_docs != -1:
        return normalized[content_docs:]

    return PurePosixPath(normalized).name


def normalize_function_name(name: Optional[str]) -> str:
    """`$SendMessage` -> `sendmessage`; surrounding whitespace is ignored."""
    if not name:
        return ""
    n = str(name).strip()
    if n.startswith("$"):
        n = n[1:]
    return n.lower()


# ---------------------------------------------------------------------
# Markdown Parsing Helpers
# ---------------------------------------------------------------------

def _clean_cell(cell: str) -> str:
    cell = cell.replace("`", "")
    cell = re.sub(r"<br\s*/?>", " ", cell, flags=re.IGNORECASE)
    return cell.strip()


def _header_map(cells: List[str]) -> Dict[str, int]:
    mapping: Dict[str, int] = {}
    for idx, cell in enumerate(cells):
        lc = cell.lower()
        if "field" in lc or "name" in lc:
            mapping["name"] = idx
        elif "type" in lc:
            mapping["type"] = idx
        elif "description" in lc:
            mapping["description"] = idx
        elif "required" in lc:
            mapping["required"] = idx
    return mapping


def _parse_parameters(lines: List[str], heading_index: int) -> List[FunctionParameter]:
    """
    Read a markdown table or bullet list that follows a Parameters heading.

    Table columns are located through the header row when it names them
    (field/name, type, description, required); otherwise the default order
    name | type | description | required is assumed.
    """
    params: List[FunctionParameter] = []
    columns = {"name": 0, "type": 1, "description": 2, "required": 3}
    header_parsed = False

    for line in lines[heading_index + 1:]:
        if _HEADING.match(line):
            break

        stripped = line.strip()
        if not stripped:
            continue

        if stripped.startswith("|"):
            cells = [c.strip() for c in line.split("|")[1:-1]]
            if cells and _TABLE_SEPARATOR.match(cells[0]):
                continue

            if not header_parsed and any(re.search(r"field|name", c, re.IGNORECASE) for c in cells):
                columns = _header_map(cells)
                header_parsed = True
                continue

            def cell(key: str) -> str:
                idx = columns.get(key)
                if idx is None or idx >= len(cells):
                    return ""
                return cells[idx]

            name = _clean_cell(cell("name"))
            if not name:
                continue
            params.append(
                FunctionParameter(
                    name=name,
                    description=_clean_cell(cell("description")) or None,
                    type=_clean_cell(cell("type")) or None,
                    required=bool(re.search(r"true|yes|required", cell("required"), re.IGNORECASE)),
                )
            )
            continue

        bullet = _BULLET_PARAM.match(stripped)
        if bullet:
            params.append(FunctionParameter(name=bullet.group(1), description=bullet.group(2).strip()))

    return params


def _lines_until_heading(lines: List[str], start: int, stop_at_blank: bool = False) -> List[str]:
    collected: List[str] = []
    for line in lines[start:]:
        if _HEADING.match(line):
            break
        if not line.strip():
            if stop_at_blank:
                break
            continue
        collected.append(line.strip())
    return collected


def _frontmatter_description(content: str) -> Optional[str]:
    fm = _FRONTMATTER.match(content)
    if not fm:
        return None
    m = _FRONTMATTER_DESCRIPTION.search(fm.group(1))
    if not m:
        return None
    value = m.group(1).strip().strip("\"'")
    return value[:MAX_DESCRIPTION_CHARS] or None


def _parameters_from_syntax(syntax: str) -> List[FunctionParameter]:
    bracket = re.search(r"\[(.*)\]", syntax, re.DOTALL)
    if not bracket:
        return []
    parts = [p for p in re.split(r"\s*;\s*", bracket.group(1)) if p]
    return [
        FunctionParameter(name=re.sub(r"<|>|\{\}|\[\]", "", p).strip() or f"param{i + 1}")
        for i, p in enumerate(parts)
    ]


def _fenced_blocks(text: str) -> List[str]:
    return [m.group(1).strip() for m in _FENCED_BLOCK.finditer(text)]


def _dedupe(items: Sequence[str]) -> List[str]:
    return list(dict.fromkeys(items))


# ---------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------

def extract_function_metadata(
    function_name: str,
    passages: Sequence[Passage],
) -> FunctionDocumentation:
    """
    Extract structured documentation for `function_name` from passages.

    Parameters
    ----------
    function_name : str
        Normalized function name, without the `$` sigil.

    passages : Sequence[Passage]
        Passages believed to document the function, best first.

    Returns
    -------
    FunctionDocumentation
        Fields that could not be found stay empty. `confidence` is left at
        0.0 for the caller to set.
    """
    sigil = f"${function_name}"
    direct_call = re.compile(re.escape(sigil) + r"\s*\[[^\n\r]+", re.IGNORECASE)

    doc = FunctionDocumentation(function=sigil)
    sources: List[str] = []

    for passage in passages:
        content = passage.content or ""
        lines = content.split("\n")

        rel = relative_doc_path(passage.source_path)
        if rel:
            sources.append(rel)

        if not doc.description:
            doc.description = _frontmatter_description(content)

        if not doc.syntax:
            direct = direct_call.search(content)
            if direct:
                doc.syntax = direct.group(0).strip()

        if not doc.syntax and _SYNTAX_HEADING.search(content):
            line = next((l for l in lines if l.strip().lower().startswith(sigil.lower())), None)
            if line:
                doc.syntax = line.strip()

        if not doc.description and _DESC_HEADING.search(content):
            idx = next((i for i, l in enumerate(lines) if _DESC_HEADING.match(l)), None)
            if idx is not None:
                desc = _lines_until_heading(lines, idx + 1)
                if desc:
                    doc.description = " ".join(desc)[:MAX_DESCRIPTION_CHARS]

        if not doc.parameters and _PARAMS_HEADING.search(content):
            idx = next((i for i, l in enumerate(lines) if _PARAMS_HEADING.match(l)), None)
            if idx is not None:
                doc.parameters = _parse_parameters(lines, idx) or None

        if not doc.parameters and doc.syntax:
            doc.parameters = _parameters_from_syntax(doc.syntax) or None

        if not doc.description:
            idx = next((i for i, l in enumerate(lines) if sigil.lower() in l.lower()), None)
            if idx is not None:
                func_line = lines[idx].replace("`", "").strip()
                if func_line and not _ANY_CALL.search(func_line):
                    doc.description = func_line[:MAX_DESCRIPTION_CHARS]
                else:
                    desc = _lines_until_heading(lines, idx + 1, stop_at_blank=True)
                    if desc:
                        doc.description = " ".join(desc)[:MAX_DESCRIPTION_CHARS]

        if passage.section_title and _EXAMPLE_TITLE.search(passage.section_title):
            for example in _fenced_blocks(content):
                if len(doc.examples) >= MAX_EXAMPLES:
                    break
                doc.examples.append(example)

    doc.sources = _dedupe(sources)

    full = "\n\n".join(p.content or "" for p in passages)

    if doc.needs_parameter_details:
        full_lines = full.split("\n")
        idx = next((i for i, l in enumerate(full_lines) if _PARAMS_HEADING.match(l)), None)
        if idx is not None:
            params = _parse_parameters(full_lines, idx)
            if params:
                doc.parameters = params

    if not doc.examples:
        for section in _SECTION_SPLIT.split(full):
            head = section.split("\n", 1)[0]
            if not _EXAMPLE_HEADING.match(head):
                continue
            for example in _fenced_blocks(section):
                if len(doc.examples) >= MAX_EXAMPLES:
                    break
                doc.examples.append(example)
            if doc.examples:
                break
        doc.examples = _dedupe(doc.examples)

    return doc
