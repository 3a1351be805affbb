"""
Schema Loader

Builds a Schema from either source format:
- Structured document (dict or JSON text) with top-level `nodes` and `relations`
- Markdown with `## NODES` and `## RELATIONS` sections
"""

import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from config.settings import DATATYPE_ALIASES
from ..errors import ParseError
from .schema import NodeSchema, PropertySchema, RelationSchema, Schema

logger = logging.getLogger(__name__)


# Markdown line patterns
NODE_HEADING = re.compile(r"^#{4,}\s+(\w+)\s*$")
RELATION_HEADING = re.compile(r"^#{3,}\s+(\w+)\s*$")
SECTION_HEADING = re.compile(r"^##\s+(.+?)\s*$")
FIELD_LINE = re.compile(r"^\*\*(.+?):?\*\*:?\s*(.*)$")
BACKTICKED = re.compile(r"`(\w+)`")
PROPERTY_LINE = re.compile(r"^- `(\w+)` \((required|optional), (\w+)\)(.*)$")
VALUES_PART = re.compile(r"Values: (.+)$")
QUOTED_VALUE = re.compile(r"'([^']+)'")
ARROW_LINE = re.compile(r"^- `?(\w+)`? (?:→|->) (.+)$")
DOMAIN_ONLY_LINE = re.compile(r"^- `?(\w+)`?\s*$")


class SchemaLoader:
    """
    Loads LPG schemas from structured documents or Markdown.

    The loader keeps no state between calls: loading the same source
    twice yields equal schemas.

    Usage:
        loader = SchemaLoader()
        schema = loader.load(markdown_text)
        schema = loader.load({"nodes": {...}, "relations": {...}})
        schema = loader.load_file("assets/schema/application.md")
    """

    def load(self, source: Union[str, Mapping[str, Any]]) -> Schema:
        """
        Parse a schema source.

        Args:
            source: Mapping, JSON text or Markdown text

        Returns:
            Parsed Schema

        Raises:
            ParseError: required sections/keys are missing or inconsistent
        """
        if isinstance(source, Mapping):
            schema = self._parse_structured(source)
        elif isinstance(source, str):
            if source.lstrip().startswith("{"):
                try:
                    document = json.loads(source)
                except json.JSONDecodeError as e:
                    raise ParseError(f"Schema JSON is invalid: {e}") from e
                if not isinstance(document, Mapping):
                    raise ParseError("Schema JSON must be an object")
                schema = self._parse_structured(document)
            else:
                schema = self._parse_markdown(source)
        else:
            raise ParseError(f"Unsupported schema source type: {type(source).__name__}")

        self._finalize(schema)
        logger.info(f"Loaded schema with {len(schema.nodes)} nodes and {len(schema.relations)} relations")
        return schema

    def load_file(self, path: Union[str, Path]) -> Schema:
        """Read a schema file (.json or .md) and parse it"""
        path = Path(path)
        if not path.exists():
            raise ParseError(f"Schema file not found: {path}")

        content = path.read_text(encoding="utf-8")
        logger.info(f"Loading schema from {path} ({len(content)} chars)")

        if path.suffix.lower() == ".json":
            try:
                document = json.loads(content)
            except json.JSONDecodeError as e:
                raise ParseError(f"Schema JSON is invalid: {e}") from e
            if not isinstance(document, Mapping):
                raise ParseError("Schema JSON must be an object")
            return self.load(document)

        return self.load(content)

    # ==========================================
    # STRUCTURED SOURCE
    # ==========================================

    def _parse_structured(self, document: Mapping[str, Any]) -> Schema:
        missing = [key for key in ("nodes", "relations") if key not in document]
        if missing:
            raise ParseError(f"Schema document is missing top-level keys: {', '.join(missing)}")

        nodes_doc = document["nodes"] or {}
        relations_doc = document["relations"] or {}
        if not isinstance(nodes_doc, Mapping) or not isinstance(relations_doc, Mapping):
            raise ParseError("Schema `nodes` and `relations` must be objects keyed by kind name")

        schema = Schema()

        for name, spec in nodes_doc.items():
            spec = spec or {}
            if not isinstance(spec, Mapping):
                raise ParseError(f"Node `{name}` must be an object")

            superclass_names = _as_list(spec.get("superclassNames"))
            superclass = spec.get("superclass")
            if superclass is None and superclass_names:
                superclass = superclass_names[-1]

            relations_out = {}
            for relation, targets in (spec.get("relationsOut") or {}).items():
                relations_out[relation] = _as_list(targets)

            schema.nodes[name] = NodeSchema(
                name=name,
                superclass=superclass,
                superclass_names=superclass_names,
                properties=self._structured_properties(spec.get("properties"), f"node `{name}`"),
                relations_out=relations_out,
            )

        for name, spec in relations_doc.items():
            spec = spec or {}
            if not isinstance(spec, Mapping):
                raise ParseError(f"Relation `{name}` must be an object")

            domains: Dict[str, List[str]] = {}
            for source, targets in (spec.get("domains") or {}).items():
                domains[source] = _as_list(targets)

            sources = _as_list(spec.get("from"))
            targets = _as_list(spec.get("to"))
            for source in sources:
                _extend_unique(domains.setdefault(source, []), targets)
            if targets and not sources:
                raise ParseError(f"Relation `{name}` declares `to` without `from`")

            schema.relations[name] = RelationSchema(
                name=name,
                properties=self._structured_properties(spec.get("properties"), f"relation `{name}`"),
                domains=domains,
            )

        return schema

    def _structured_properties(self, raw: Any, owner: str) -> Dict[str, PropertySchema]:
        if not raw:
            return {}

        if isinstance(raw, Mapping):
            items = []
            for name, spec in raw.items():
                if isinstance(spec, str):
                    spec = {"datatype": spec}
                elif spec is None:
                    spec = {}
                elif not isinstance(spec, Mapping):
                    raise ParseError(f"Property `{name}` of {owner} must be an object or a datatype name")
                items.append({"name": name, **spec})
        elif isinstance(raw, list):
            items = raw
        else:
            raise ParseError(f"Properties of {owner} must be an object or a list")

        properties = {}
        for item in items:
            if not isinstance(item, Mapping) or not item.get("name"):
                raise ParseError(f"Property of {owner} has no name")
            name = item["name"]
            properties[name] = PropertySchema(
                name=name,
                datatype=normalize_datatype(item.get("datatype", item.get("type"))),
                required=bool(item.get("required", False)),
                values=[str(v) for v in item.get("values") or []],
            )
        return properties

    # ==========================================
    # MARKDOWN SOURCE
    # ==========================================

    def _parse_markdown(self, content: str) -> Schema:
        lines = content.splitlines()
        sections = [_section_key(line) for line in lines]

        missing = [name for name in ("NODES", "RELATIONS") if name not in sections]
        if missing:
            raise ParseError(f"Markdown schema is missing sections: {', '.join('## ' + m for m in missing)}")

        schema = Schema()
        section = None
        block = None        # NodeSchema or RelationSchema under construction
        list_mode = None    # which bullet list the following lines belong to
        bare_sources: List[str] = []
        range_targets: List[str] = []

        def close_block():
            nonlocal block, bare_sources, range_targets
            if isinstance(block, RelationSchema):
                for source in bare_sources:
                    block.domains.setdefault(source, list(range_targets))
            block = None
            bare_sources = []
            range_targets = []

        for line, section_name in zip((raw.strip() for raw in lines), sections):
            if section_name is not None:
                close_block()
                list_mode = None
                section = section_name if section_name in ("NODES", "RELATIONS") else None
                continue

            if section is None:
                continue

            if line.startswith("#"):
                close_block()
                list_mode = None
                heading = (NODE_HEADING if section == "NODES" else RELATION_HEADING).match(line)
                if heading and section == "NODES":
                    block = schema.nodes[heading.group(1)] = NodeSchema(name=heading.group(1))
                elif heading:
                    block = schema.relations[heading.group(1)] = RelationSchema(name=heading.group(1))
                continue

            if block is None or not line:
                continue

            field = FIELD_LINE.match(line)
            if field:
                list_mode = self._start_field(block, field.group(1).strip(), field.group(2).strip())
                continue

            if not line.startswith("-"):
                list_mode = None
                continue

            if list_mode == "properties":
                self._parse_property_line(block, line)
            elif list_mode == "relations_out":
                match = ARROW_LINE.match(line)
                if match:
                    _extend_unique(block.relations_out.setdefault(match.group(1), []), _split_names(match.group(2)))
            elif list_mode == "domains":
                match = ARROW_LINE.match(line)
                if match:
                    block.domains[match.group(1)] = _split_names(match.group(2))
                elif DOMAIN_ONLY_LINE.match(line):
                    bare_sources.append(DOMAIN_ONLY_LINE.match(line).group(1))
            elif list_mode == "range":
                _extend_unique(range_targets, _split_names(line[1:]))

        close_block()
        return schema

    def _start_field(self, block, name: str, inline: str) -> Optional[str]:
        """Handle a `**Field**:` line; returns the list mode it opens"""
        lowered = name.lower()

        if isinstance(block, NodeSchema):
            if lowered in ("labels", "superclass"):
                labels = BACKTICKED.findall(inline)
                if labels:
                    block.superclass = labels[-1]
                    block.superclass_names = labels
                return None
            if lowered == "properties":
                return "properties"
            if lowered == "relations (outgoing)":
                return "relations_out"
            if lowered == "relations (incoming)":
                return "ignored"
            return None

        if lowered == "properties":
            return "properties"
        if lowered.startswith("domain"):
            return "domains"
        if lowered.startswith("range"):
            return "range"
        return None

    def _parse_property_line(self, block, line: str):
        match = PROPERTY_LINE.match(line)
        if not match:
            return

        name, required, datatype, rest = match.groups()
        values = []
        values_match = VALUES_PART.search(rest)
        if values_match:
            values = QUOTED_VALUE.findall(values_match.group(1))

        block.properties[name] = PropertySchema(
            name=name,
            datatype=normalize_datatype(datatype),
            required=required == "required",
            values=values,
        )

    # ==========================================
    # CONSISTENCY
    # ==========================================

    def _finalize(self, schema: Schema):
        """Check invariants and fold node relationsOut into relation domains"""
        for node in schema.nodes.values():
            seen = {node.name}
            parent = node.superclass
            while parent:
                if parent in seen:
                    raise ParseError(f"Superclass cycle detected at node `{node.name}`")
                seen.add(parent)
                parent_node = schema.nodes.get(parent)
                parent = parent_node.superclass if parent_node else None

            for relation, targets in node.relations_out.items():
                if relation not in schema.relations:
                    raise ParseError(f"Node `{node.name}` references unknown relation `{relation}`")
                _extend_unique(schema.relations[relation].domains.setdefault(node.name, []), targets)

        for node in schema.nodes.values():
            if node.superclass and node.superclass not in schema.nodes:
                logger.debug(f"Superclass `{node.superclass}` of `{node.name}` is not a declared node")


def normalize_datatype(datatype: Optional[str]) -> Optional[str]:
    """Map a datatype name to its canonical spelling; unknown names pass through"""
    if not datatype:
        return None
    return DATATYPE_ALIASES.get(str(datatype).strip().lower(), str(datatype).strip())


def _section_key(line: str) -> Optional[str]:
    """`## Nodes (12)` -> `NODES`; None for lines that are not level-2 headings"""
    match = SECTION_HEADING.match(line.strip())
    if not match:
        return None
    name = match.group(1).upper()
    return "PROPERTIES REFERENCE" if name.startswith("PROPERTIES REFERENCE") else name.split()[0]


def _as_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    return [str(v) for v in value]


def _split_names(text: str) -> List[str]:
    return [name.strip().strip("`") for name in text.split(",") if name.strip()]


def _extend_unique(target: List[str], items: Iterable[str]):
    for item in items:
        if item not in target:
            target.append(item)
