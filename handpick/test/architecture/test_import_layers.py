from __future__ import annotations

import pytest

from handpick.test.architecture._gate import require_arch_checks_enabled
from handpick.test.architecture._utils import (
    handpick_root,
    iter_source_files,
    matches_prefix,
    parse_imports,
)

# Lower layers must not reach up into the CLI or its prompt library.
RULES: dict[str, tuple[str, ...]] = {
    "core": ("handpick.platform", "handpick.git", "handpick.services", "handpick.cli", "typer"),
    "platform": ("handpick.git", "handpick.services", "handpick.cli", "typer"),
    "git": ("handpick.services", "handpick.cli", "typer", "rich"),
    "services": ("handpick.cli", "typer"),
}


@pytest.mark.parametrize("layer", sorted(RULES))
def test_layer_imports_point_downwards(layer: str) -> None:
    require_arch_checks_enabled()

    root = handpick_root()
    offenders: list[str] = []
    for file_path in iter_source_files(root / layer):
        rel = file_path.relative_to(root)
        for item in parse_imports(file_path):
            if any(matches_prefix(item.module, prefix) for prefix in RULES[layer]):
                offenders.append(f"{rel}:{item.line}: forbidden import '{item.module}'")

    assert not offenders, f"{layer} layering violations:\n" + "\n".join(offenders)
