"""Match report modules to the build unit being processed.

Usage:
    matcher = ModuleMatcher(reporter)
    module = matcher.match_directory(system, "/work/bank/core")
    module = matcher.match_key(system, "com.bank:bank-core", "/work/bank/core")

Both variants return ``None`` when no single module wins. A non-match is a
normal outcome, not an error.
"""

import os
from collections.abc import Callable

from sonargraph_bridge.model import Module, SoftwareSystem
from sonargraph_bridge.naming import WORKSPACE_PREFIX
from sonargraph_bridge.paths import identifying_path, is_underneath
from sonargraph_bridge.reporter import Reporter


def _top_group(system: SoftwareSystem, count: Callable[[Module], int]) -> list[Module]:
    """Return the modules sharing the highest non-zero *count*."""
    by_count: dict[int, list[Module]] = {}
    for module in system.modules.values():
        if not module.root_directories:
            continue
        matched = count(module)
        if matched > 0:
            by_count.setdefault(matched, []).append(module)
    if not by_count:
        return []
    return by_count[max(by_count)]


class ModuleMatcher:
    def __init__(self, reporter: Reporter) -> None:
        self._reporter = reporter

    def match_directory(self, system: SoftwareSystem, base_directory: str) -> Module | None:
        """Match by root directories lying underneath *base_directory*."""
        base_path = identifying_path(base_directory)
        self._reporter.info(f"Trying to match module using system base directory '{system.base_dir}'")

        def count(module: Module) -> int:
            matched = 0
            for root in module.root_directories:
                absolute = os.path.join(system.base_dir, root.relative_path)
                if not os.path.exists(absolute):
                    continue
                root_path = identifying_path(absolute)
                if is_underneath(root_path, base_path):
                    self._reporter.info(f"Matched root directory '{root_path}' underneath '{base_path}'")
                    matched += 1
            return matched

        candidates = _top_group(system, count)
        return self._single(candidates[0] if len(candidates) == 1 else None, base_directory)

    def match_key(self, system: SoftwareSystem, declared_key: str, base_directory: str) -> Module | None:
        """Match using root directories resolvable from *base_directory*.

        Ties are broken by looking for the bare module name inside
        *declared_key*; exactly one hit is required.
        """
        def count(module: Module) -> int:
            return sum(
                1 for root in module.root_directories
                if os.path.exists(os.path.join(base_directory, root.relative_path))
            )

        candidates = _top_group(system, count)
        if len(candidates) == 1:
            return self._single(candidates[0], declared_key)

        matched = None
        for candidate in candidates:
            fq_name = candidate.fq_name
            if not fq_name or not fq_name.startswith(WORKSPACE_PREFIX):
                self._reporter.warning(f"Ignoring invalid module fq name coming from report '{fq_name}'")
                continue
            if fq_name[len(WORKSPACE_PREFIX):] in declared_key:
                if matched is not None:
                    return self._single(None, declared_key)
                matched = candidate
        return self._single(matched, declared_key)

    def _single(self, module: Module | None, requested: str) -> Module | None:
        if module is None:
            self._reporter.info(f"No module match found for '{requested}'")
        else:
            self._reporter.info(f"Matched module '{module.name}'")
        return module
