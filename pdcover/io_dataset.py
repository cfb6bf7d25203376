from __future__ import annotations

import re
from pathlib import Path
from typing import Any, Iterable, Mapping

from pdcover.errors import ValidationError
from pdcover.types import Instance


META_FIELD = re.compile(r"(?P<key>[A-Za-z_][A-Za-z0-9_]*)=(?P<value>\S+)")


def parse_meta_line(line: str) -> dict[str, str]:
    """Parse ``# key=value key=value ...`` into a dict."""

    text = line.strip()
    if not text.startswith("#"):
        raise ValidationError(f"meta line must start with '#': {line!r}")
    body = text[1:].split()
    meta: dict[str, str] = {}
    for token in body:
        match = META_FIELD.fullmatch(token)
        if match is None:
            raise ValidationError(f"malformed meta field {token!r}, expected key=value")
        meta[match["key"]] = match["value"]
    return meta


def read_instance(path: str | Path) -> Instance:
    p = Path(path)
    lines = [line.strip() for line in p.read_text(encoding="utf-8").splitlines() if line.strip()]

    meta: dict[str, str] = {}
    if lines and lines[0].startswith("#"):
        meta = parse_meta_line(lines[0])
        lines = lines[1:]
    if not lines:
        raise ValidationError(f"instance file has no header line: {p}")

    header_parts = lines[0].split()
    if len(header_parts) != 2:
        raise ValidationError(f"header must be '<n_elements> <n_sets>': {p}")
    try:
        n_elements, n_sets = int(header_parts[0]), int(header_parts[1])
    except ValueError as exc:
        raise ValidationError(f"header must hold two integers: {p}") from exc

    set_lines = lines[1:]
    if len(set_lines) != n_sets:
        raise ValidationError(f"set line count mismatch, declared={n_sets}, found={len(set_lines)}: {p}")

    instance = Instance(
        n_elements,
        name=meta.get("sample", p.stem),
        class_id=meta.get("class", p.parent.name),
    )
    for idx, raw in enumerate(set_lines):
        parts = raw.split()
        try:
            instance.add_set(float(parts[0]), (int(x) for x in parts[1:]))
        except ValueError as exc:
            raise ValidationError(f"malformed set line, index={idx}: {p}") from exc

    instance.validate()
    return instance


def iter_instances(
    dataset_root: str | Path,
    class_filter: Iterable[str] | None = None,
    file_prefix: str = "sc_",
) -> Iterable[Instance]:
    root = Path(dataset_root)
    if not root.exists():
        raise FileNotFoundError(f"dataset directory does not exist: {root}")

    allowed = set(class_filter) if class_filter else None
    for class_dir in sorted(x for x in root.iterdir() if x.is_dir()):
        if allowed is not None and class_dir.name not in allowed:
            continue
        for path in sorted(x for x in class_dir.iterdir() if x.is_file() and x.name.startswith(file_prefix)):
            yield read_instance(path)


def read_all_instances(
    dataset_root: str | Path,
    class_filter: Iterable[str] | None = None,
    file_prefix: str = "sc_",
) -> list[Instance]:
    return list(iter_instances(dataset_root=dataset_root, class_filter=class_filter, file_prefix=file_prefix))


def _format_cost(cost: float) -> str:
    return str(int(cost)) if float(cost).is_integer() else repr(float(cost))


def write_instance_file(
    path: str | Path,
    instance: Instance,
    meta: Mapping[str, Any] | None = None,
) -> None:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)

    fields = dict(meta or {})
    if instance.class_id:
        fields.setdefault("class", instance.class_id)
    if instance.name:
        fields.setdefault("sample", instance.name)

    lines: list[str] = []
    if fields:
        lines.append("# " + " ".join(f"{k}={v}" for k, v in fields.items()))
    lines.append(f"{instance.element_count} {instance.set_count}")
    for cost, items in zip(instance.costs, instance.sets):
        lines.append(" ".join([_format_cost(cost), *(str(i) for i in items)]))

    p.write_text("\n".join(lines) + "\n", encoding="utf-8")
