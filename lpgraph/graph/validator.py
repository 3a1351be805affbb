"""
Schema Validator

Checks a graph payload against a Schema and reports per-element
diagnostics plus aggregate statistics. Diagnostics never abort the
walk; only a malformed payload shape does.
"""

import logging
from typing import Any, Callable, Dict, List, Optional

from .schema import (
    ErrorKind,
    GraphNode,
    GraphRelationship,
    PropertySchema,
    Schema,
    ValidationIssue,
    ValidationResult,
    ValidationStats,
    partition_payload,
)

logger = logging.getLogger(__name__)


def _is_integer(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    return isinstance(value, float) and value.is_integer()


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


DATATYPE_CHECKS: Dict[str, Callable[[Any], bool]] = {
    "boolean": lambda v: isinstance(v, bool),
    "integer": _is_integer,
    "float": _is_number,
    "string": lambda v: isinstance(v, str),
    "URI": lambda v: isinstance(v, str),
}


class SchemaValidator:
    """
    Validates graph payloads against a schema.

    Usage:
        validator = SchemaValidator(schema)
        result = validator.validate(payload)
        if not result.valid:
            for error in result.errors:
                print(error.error_kind, error.message)
    """

    def __init__(self, schema: Schema):
        self.schema = schema
        self.known_labels = schema.known_labels()

    def validate(self, payload: Any) -> ValidationResult:
        """
        Validate a payload.

        Args:
            payload: List of node/relationship elements (dicts or models)

        Returns:
            ValidationResult; `valid` is True iff no errors were recorded

        Raises:
            PayloadError: payload is not a list or an element has no type
        """
        parts = partition_payload(payload)
        errors: List[ValidationIssue] = []
        warnings: List[str] = []

        node_map = {node.id: node for node in parts.nodes}

        validated_nodes = 0
        for node in parts.nodes:
            issues = self._validate_node(node, warnings)
            if not issues:
                validated_nodes += 1
            errors.extend(issues)

        validated_relations = 0
        for relation in parts.relationships:
            issues = self._validate_relation(relation, node_map, warnings)
            if not issues:
                validated_relations += 1
            errors.extend(issues)

        for element in parts.unknown:
            element_type = element.get("type")
            errors.append(ValidationIssue(
                element_id=_element_id(element),
                element_type="node",
                error_kind=ErrorKind.INVALID_TYPE,
                message=f"Invalid type \"{element_type}\" (id: {element.get('id')})",
                details={"type": element_type},
            ))

        self._check_unused(parts.nodes, parts.relationships, warnings)

        result = ValidationResult(
            valid=not errors,
            errors=errors,
            warnings=warnings,
            stats=ValidationStats(
                total_elements=parts.total,
                total_nodes=len(parts.nodes),
                total_relations=len(parts.relationships),
                validated_nodes=validated_nodes,
                validated_relations=validated_relations,
            ),
        )
        logger.info(
            f"Validated {parts.total} elements: {len(errors)} errors, {len(warnings)} warnings"
        )
        return result

    # ==========================================
    # NODES
    # ==========================================

    def _validate_node(self, node: GraphNode, warnings: List[str]) -> List[ValidationIssue]:
        issues: List[ValidationIssue] = []
        labels = node.labels

        if not labels:
            issues.append(self._node_issue(node, ErrorKind.INVALID_LABEL, f"Node (id: {node.id}) has no labels"))
            return issues

        for label in labels:
            if label not in self.known_labels:
                issues.append(self._node_issue(
                    node, ErrorKind.INVALID_LABEL,
                    f"Invalid label \"{label}\" for node (id: {node.id})",
                    {"label": label},
                ))

        kind = labels[-1]
        if kind not in self.schema.nodes:
            if kind in self.known_labels:
                issues.append(self._node_issue(
                    node, ErrorKind.INVALID_LABEL,
                    f"Most specific label \"{kind}\" of node (id: {node.id}) is not a node kind",
                    {"label": kind},
                ))
            return issues

        for ancestor in self.schema.ancestors(kind):
            if ancestor not in labels:
                issues.append(self._node_issue(
                    node, ErrorKind.MISSING_SUPERCLASS,
                    f"Label \"{ancestor}\" missing for node (id: {node.id})",
                    {"label": kind, "missingSuperclass": ancestor},
                ))

        properties = self.schema.effective_properties(kind)
        issues.extend(self._check_properties(
            node.properties, properties,
            lambda kind_, message, details: self._node_issue(node, kind_, message, details),
            f"node (id: {node.id})",
        ))

        declared = set(properties)
        for label in labels:
            if label in self.schema.nodes and label != kind:
                declared.update(self.schema.effective_properties(label))
        for name in node.properties:
            if name not in declared:
                warnings.append(f"Undeclared property \"{name}\" on node (id: {node.id})")

        return issues

    def _node_issue(self, node: GraphNode, kind: ErrorKind, message: str,
                    details: Optional[Dict[str, Any]] = None) -> ValidationIssue:
        return ValidationIssue(
            element_id=node.id,
            element_type="node",
            error_kind=kind,
            message=message,
            details=details,
        )

    # ==========================================
    # RELATIONSHIPS
    # ==========================================

    def _validate_relation(self, relation: GraphRelationship, node_map: Dict[Any, GraphNode],
                           warnings: List[str]) -> List[ValidationIssue]:
        issues: List[ValidationIssue] = []
        label = relation.label
        schema_relation = self.schema.relations.get(label)

        if schema_relation is None:
            issues.append(self._relation_issue(
                relation, ErrorKind.INVALID_TYPE,
                f"Invalid label \"{label}\" for relationship (id: {relation.id})",
                {"label": label},
            ))
            return issues

        issues.extend(self._check_properties(
            relation.properties, schema_relation.properties,
            lambda kind_, message, details: self._relation_issue(relation, kind_, message, details),
            f"relationship \"{label}\" (id: {relation.id})",
        ))

        start = node_map.get(relation.start)
        end = node_map.get(relation.end)
        if start is None or end is None:
            missing = [
                f"{side} node (id: {node_id})"
                for side, node_id, node in (("start", relation.start, start), ("end", relation.end, end))
                if node is None
            ]
            warnings.append(
                f"Relationship \"{label}\" (id: {relation.id}) references {' and '.join(missing)} "
                f"not present in the payload; kind check skipped"
            )
            return issues

        if not self._domain_allows(schema_relation.domains, start.labels, end.labels):
            issues.append(self._relation_issue(
                relation, ErrorKind.INVALID_RELATION,
                f"Invalid start/end for relationship \"{label}\" (id: {relation.id})",
                {
                    "startLabels": start.labels,
                    "endLabels": end.labels,
                    "allowedDomains": list(schema_relation.domains),
                },
            ))

        return issues

    def _domain_allows(self, domains: Dict[str, List[str]], start_labels: List[str],
                       end_labels: List[str]) -> bool:
        if not domains:
            return True

        for start_label in start_labels:
            if start_label not in domains:
                continue
            targets = domains[start_label]
            if not targets or any(end_label in targets for end_label in end_labels):
                return True

        return False

    def _relation_issue(self, relation: GraphRelationship, kind: ErrorKind, message: str,
                        details: Optional[Dict[str, Any]] = None) -> ValidationIssue:
        return ValidationIssue(
            element_id=relation.id,
            element_type="relationship",
            error_kind=kind,
            message=message,
            details=details,
        )

    # ==========================================
    # SHARED
    # ==========================================

    def _check_properties(self, values: Dict[str, Any], declared: Dict[str, PropertySchema],
                          make_issue, owner: str) -> List[ValidationIssue]:
        """Required/datatype/allowed-value checks for one property map"""
        issues = []

        for name, prop in declared.items():
            value = values.get(name)

            if value is None:
                if prop.required:
                    issues.append(make_issue(
                        ErrorKind.MISSING_PROPERTY,
                        f"Property \"{name}\" missing for {owner}",
                        {"property": name},
                    ))
                continue

            check = DATATYPE_CHECKS.get(prop.datatype)
            if check and not check(value):
                issues.append(make_issue(
                    ErrorKind.INVALID_TYPE,
                    f"Invalid value for property \"{name}\" for {owner}: "
                    f"expected {prop.datatype}, got {type(value).__name__}",
                    {"property": name, "expectedType": prop.datatype, "actualValue": value},
                ))
                continue

            if prop.values and isinstance(value, str) and value not in prop.values:
                issues.append(make_issue(
                    ErrorKind.INVALID_TYPE,
                    f"Invalid value for property \"{name}\" for {owner}: "
                    f"\"{value}\" not in allowed values [{', '.join(prop.values)}]",
                    {"property": name, "value": value, "allowedValues": prop.values},
                ))

        return issues

    def _check_unused(self, nodes: List[GraphNode], relations: List[GraphRelationship],
                      warnings: List[str]):
        used_labels = {label for node in nodes for label in node.labels}
        used_relations = {relation.label for relation in relations}

        for name in self.schema.nodes:
            if name not in used_labels:
                warnings.append(f"Unused node \"{name}\"")
        for name in self.schema.relations:
            if name not in used_relations:
                warnings.append(f"Unused relation \"{name}\"")


def _element_id(element: Dict[str, Any]):
    value = element.get("id")
    return value if isinstance(value, (int, str)) and not isinstance(value, bool) else None
