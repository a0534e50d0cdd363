"""
Source map v3 codec and composition.

A build produces two maps: the bundler's (original sources -> bundle) and the
compiler's (bundle -> bytecode). `compose_source_maps([bundler, compiler])`
folds them into one map whose generated positions are bytecode positions and
whose sources are the original project files.

Positions in `Mapping` are 0-based for both lines and columns, matching the
encoded `mappings` field. Lookups use greatest-lower-bound on the generated
line, like `originalPositionFor` in the JavaScript `source-map` package.
"""

from __future__ import annotations

import bisect
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from .errors import SourceMapFormatError

SourceMap = Dict[str, Any]
Composer = Callable[[Sequence[SourceMap]], SourceMap]

_B64 = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/"
_B64_INDEX = {ch: idx for idx, ch in enumerate(_B64)}
_VLQ_SHIFT = 5
_VLQ_CONTINUATION = 1 << _VLQ_SHIFT
_VLQ_MASK = _VLQ_CONTINUATION - 1

# Extension fields copied from the compiler map into the composed map.
_PASSTHROUGH_FIELDS = ("x_hermes_function_offsets",)


@dataclass(frozen=True)
class Mapping:
    generated_line: int
    generated_column: int
    source: Optional[str] = None
    original_line: Optional[int] = None
    original_column: Optional[int] = None
    name: Optional[str] = None


def encode_vlq(value: int) -> str:
    vlq = ((-value) << 1) | 1 if value < 0 else value << 1
    out = []
    while True:
        digit = vlq & _VLQ_MASK
        vlq >>= _VLQ_SHIFT
        if vlq:
            digit |= _VLQ_CONTINUATION
        out.append(_B64[digit])
        if not vlq:
            return "".join(out)


def decode_vlq(text: str) -> List[int]:
    """Decode a run of base64 VLQ digits (one segment) into integers."""
    values: List[int] = []
    value = 0
    shift = 0
    for ch in text:
        digit = _B64_INDEX.get(ch)
        if digit is None:
            raise SourceMapFormatError(f"invalid base64 VLQ character {ch!r}")
        value += (digit & _VLQ_MASK) << shift
        if digit & _VLQ_CONTINUATION:
            shift += _VLQ_SHIFT
            continue
        values.append(-(value >> 1) if value & 1 else value >> 1)
        value = 0
        shift = 0
    if shift:
        raise SourceMapFormatError(f"truncated VLQ segment {text!r}")
    return values


def decode_mappings(text: str) -> List[List[Tuple[int, ...]]]:
    """
    Decode a `mappings` string into absolute segments per generated line.

    Each segment is a tuple of 1, 4 or 5 ints:
    (column[, source_index, original_line, original_column[, name_index]]).
    """
    lines: List[List[Tuple[int, ...]]] = []
    source = original_line = original_column = name = 0
    for line_text in text.split(";"):
        column = 0
        segments: List[Tuple[int, ...]] = []
        for seg_text in line_text.split(","):
            if not seg_text:
                continue
            fields = decode_vlq(seg_text)
            if len(fields) not in (1, 4, 5):
                raise SourceMapFormatError(f"segment {seg_text!r} has {len(fields)} fields")
            column += fields[0]
            if len(fields) == 1:
                segments.append((column,))
                continue
            source += fields[1]
            original_line += fields[2]
            original_column += fields[3]
            if len(fields) == 5:
                name += fields[4]
                segments.append((column, source, original_line, original_column, name))
            else:
                segments.append((column, source, original_line, original_column))
        lines.append(segments)
    return lines


def encode_mappings(lines: Sequence[Sequence[Tuple[int, ...]]]) -> str:
    prev_source = prev_line = prev_column = prev_name = 0
    out_lines = []
    for segments in lines:
        prev_gen_column = 0
        encoded = []
        for seg in segments:
            parts = [encode_vlq(seg[0] - prev_gen_column)]
            prev_gen_column = seg[0]
            if len(seg) >= 4:
                parts.append(encode_vlq(seg[1] - prev_source))
                parts.append(encode_vlq(seg[2] - prev_line))
                parts.append(encode_vlq(seg[3] - prev_column))
                prev_source, prev_line, prev_column = seg[1], seg[2], seg[3]
            if len(seg) == 5:
                parts.append(encode_vlq(seg[4] - prev_name))
                prev_name = seg[4]
            encoded.append("".join(parts))
        out_lines.append(",".join(encoded))
    return ";".join(out_lines)


def _require_v3(doc: Any) -> SourceMap:
    if not isinstance(doc, dict):
        raise SourceMapFormatError("source map must be a JSON object")
    if doc.get("version") != 3:
        raise SourceMapFormatError(f"unsupported source map version: {doc.get('version')!r}")
    return doc


def _index_lookup(table: Sequence[Any], idx: int, what: str) -> Any:
    if idx < 0 or idx >= len(table):
        raise SourceMapFormatError(f"{what} index {idx} out of range")
    return table[idx]


def _join_source_root(root: Optional[str], source: Any) -> Any:
    # Same rule as `util.join` in the `source-map` package: absolute sources win.
    if not root or not isinstance(source, str) or "://" in source or source.startswith("/"):
        return source
    return f"{root.rstrip('/')}/{source}"


def source_names(doc: SourceMap) -> List[Any]:
    """`sources` of a basic map with `sourceRoot` applied."""
    sources = doc.get("sources") or []
    if not isinstance(sources, list):
        raise SourceMapFormatError("source map fields have unexpected types")
    root = doc.get("sourceRoot")
    return [_join_source_root(root, src) for src in sources]


def _section_docs(doc: Any) -> List[SourceMap]:
    if not isinstance(doc, dict):
        return []
    if "sections" not in doc:
        return [doc]
    return [s["map"] for s in doc["sections"] if isinstance(s, dict) and isinstance(s.get("map"), dict)]


def _parse_basic(doc: SourceMap, line_offset: int, column_offset: int) -> List[Mapping]:
    sources = source_names(doc)
    names = doc.get("names") or []
    text = doc.get("mappings", "")
    if not isinstance(text, str) or not isinstance(names, list):
        raise SourceMapFormatError("source map fields have unexpected types")
    mappings: List[Mapping] = []
    for line_no, segments in enumerate(decode_mappings(text)):
        for seg in segments:
            column = seg[0] + (column_offset if line_no == 0 else 0)
            if len(seg) == 1:
                mappings.append(Mapping(line_no + line_offset, column))
                continue
            name = _index_lookup(names, seg[4], "name") if len(seg) == 5 else None
            mappings.append(
                Mapping(
                    generated_line=line_no + line_offset,
                    generated_column=column,
                    source=_index_lookup(sources, seg[1], "source"),
                    original_line=seg[2],
                    original_column=seg[3],
                    name=name,
                )
            )
    return mappings


def parse_source_map(doc: Any) -> List[Mapping]:
    """Flatten a v3 map (basic or indexed with `sections`) into mappings."""
    doc = _require_v3(doc)
    if "sections" not in doc:
        return _parse_basic(doc, 0, 0)
    sections = doc["sections"]
    if not isinstance(sections, list) or not all(isinstance(s, dict) for s in sections):
        raise SourceMapFormatError("`sections` must be a list of objects")
    mappings: List[Mapping] = []
    for section in sections:
        offset = section.get("offset") or {}
        inner = section.get("map")
        if inner is None:
            raise SourceMapFormatError("indexed source map sections must embed a `map`")
        mappings.extend(_parse_section(inner, offset.get("line", 0), offset.get("column", 0)))
    return mappings


def _parse_section(doc: Any, line_offset: int, column_offset: int) -> List[Mapping]:
    doc = _require_v3(doc)
    if "sections" in doc:
        raise SourceMapFormatError("nested indexed source maps are not supported")
    return _parse_basic(doc, line_offset, column_offset)


def sources_content(doc: Any) -> Dict[str, Optional[str]]:
    """Map source name -> embedded content for every map in `doc`."""
    contents: Dict[str, Optional[str]] = {}
    for d in _section_docs(doc):
        for src, content in zip(source_names(d), d.get("sourcesContent") or []):
            if content is not None:
                contents.setdefault(src, content)
    return contents


def facebook_sources(doc: Any) -> Dict[str, Any]:
    """Map source name -> `x_facebook_sources` metadata for every map in `doc`."""
    metadata: Dict[str, Any] = {}
    for d in _section_docs(doc):
        entries = d.get("x_facebook_sources")
        if not isinstance(entries, list):
            continue
        for src, entry in zip(source_names(d), entries):
            metadata.setdefault(src, entry)
    return metadata


class MappingIndex:
    """Greatest-lower-bound lookup by generated position."""

    def __init__(self, mappings: Iterable[Mapping]) -> None:
        self._lines: Dict[int, List[Mapping]] = {}
        for m in mappings:
            self._lines.setdefault(m.generated_line, []).append(m)
        self._columns: Dict[int, List[int]] = {}
        for line, items in self._lines.items():
            items.sort(key=lambda m: m.generated_column)
            self._columns[line] = [m.generated_column for m in items]

    def original_position_for(self, line: int, column: int) -> Optional[Mapping]:
        columns = self._columns.get(line)
        if not columns:
            return None
        pos = bisect.bisect_right(columns, column) - 1
        if pos < 0:
            return None
        hit = self._lines[line][pos]
        return hit if hit.source is not None else None


def original_position_for(mappings: Iterable[Mapping], line: int, column: int) -> Optional[Mapping]:
    return MappingIndex(mappings).original_position_for(line, column)


def build_source_map(
    mappings: Iterable[Mapping],
    *,
    file: Optional[str] = None,
    contents: Optional[Dict[str, Optional[str]]] = None,
) -> SourceMap:
    """Encode mappings into a basic v3 source map document."""
    ordered = sorted(mappings, key=lambda m: (m.generated_line, m.generated_column))
    sources: List[str] = []
    source_ids: Dict[str, int] = {}
    names: List[str] = []
    name_ids: Dict[str, int] = {}
    lines: List[List[Tuple[int, ...]]] = []
    for m in ordered:
        while len(lines) <= m.generated_line:
            lines.append([])
        if m.source is None or m.original_line is None or m.original_column is None:
            lines[m.generated_line].append((m.generated_column,))
            continue
        if m.source not in source_ids:
            source_ids[m.source] = len(sources)
            sources.append(m.source)
        seg: Tuple[int, ...] = (m.generated_column, source_ids[m.source], m.original_line, m.original_column)
        if m.name is not None:
            if m.name not in name_ids:
                name_ids[m.name] = len(names)
                names.append(m.name)
            seg = seg + (name_ids[m.name],)
        lines[m.generated_line].append(seg)

    doc: SourceMap = {"version": 3}
    if file:
        doc["file"] = file
    doc["sources"] = sources
    if contents and any(src in contents for src in sources):
        doc["sourcesContent"] = [contents.get(src) for src in sources]
    doc["names"] = names
    doc["mappings"] = encode_mappings(lines)
    return doc


def compose_source_maps(maps: Sequence[SourceMap]) -> SourceMap:
    """
    Compose a chain of maps ordered from closest-to-source to closest-to-output.

    The last map supplies the generated positions. Each of its segments is
    resolved backwards through the earlier maps; a segment with no entry in
    an earlier map keeps its current source reference.

    Sources are emitted with `sourceRoot` already applied, so the result has
    no `sourceRoot` of its own. `x_facebook_sources` from the first map is
    carried over in the order of the composed `sources`.
    """
    if not maps:
        raise SourceMapFormatError("compose_source_maps needs at least one map")
    last = _require_v3(maps[-1])
    composed = parse_source_map(last)
    for earlier in reversed(maps[:-1]):
        index = MappingIndex(parse_source_map(earlier))
        resolved: List[Mapping] = []
        for m in composed:
            if m.source is None or m.original_line is None or m.original_column is None:
                resolved.append(m)
                continue
            hit = index.original_position_for(m.original_line, m.original_column)
            if hit is None:
                resolved.append(m)
                continue
            resolved.append(
                Mapping(
                    generated_line=m.generated_line,
                    generated_column=m.generated_column,
                    source=hit.source,
                    original_line=hit.original_line,
                    original_column=hit.original_column,
                    name=hit.name if hit.name is not None else m.name,
                )
            )
        composed = resolved

    contents: Dict[str, Optional[str]] = {}
    for doc in maps:
        for src, content in sources_content(doc).items():
            contents.setdefault(src, content)
    result = build_source_map(composed, file=last.get("file"), contents=contents)
    for key in _PASSTHROUGH_FIELDS:
        if key in last:
            result[key] = last[key]
    # Symbolication metadata is keyed by position in `sources`; re-index it.
    metadata = facebook_sources(maps[0])
    if metadata:
        result["x_facebook_sources"] = [metadata.get(src) for src in result["sources"]]
    return result
