# src/wsg_check/auditor/registry.py
import importlib
import logging
import pkgutil
from typing import Iterable, List, Optional

from wsg_check.auditor.core import RuleDefinition

logger = logging.getLogger(__name__)

RULES_PACKAGE = "wsg_check.auditor.rules"


class RuleRegistry:
    """
    Central registry of the built-in rules.

    Discovers every module in 'wsg_check.auditor.rules' and collects the
    RuleDefinition instances listed in its `DEFINITIONS` attribute.
    """

    _definitions: List[RuleDefinition] = []
    _loaded: bool = False

    @classmethod
    def discover(cls) -> List[RuleDefinition]:
        if cls._loaded:
            return list(cls._definitions)

        rules_pkg = importlib.import_module(RULES_PACKAGE)
        definitions: List[RuleDefinition] = []
        for _, name, _ in sorted(pkgutil.iter_modules(rules_pkg.__path__), key=lambda m: m[1]):
            module = importlib.import_module(f"{RULES_PACKAGE}.{name}")
            module_defs = getattr(module, "DEFINITIONS", None)
            if not module_defs:
                continue
            for defn in module_defs:
                if not isinstance(defn, RuleDefinition):
                    logger.warning("Ignoring non-RuleDefinition entry in %s: %r", name, defn)
                    continue
                if not defn.is_bound:
                    logger.warning("Rule %s in %s has no implementation; skipping.", defn.guideline_id, name)
                    continue
                definitions.append(defn)
            logger.debug("Rules loaded from %s: %d", name, len(module_defs))

        cls._definitions = definitions
        cls._loaded = True
        return list(definitions)

    @classmethod
    def get_all_guideline_ids(cls) -> List[str]:
        return [d.guideline_id for d in cls.discover()]

    @classmethod
    def reset(cls) -> None:
        cls._definitions = []
        cls._loaded = False


def select_rules(
        definitions: Iterable[RuleDefinition],
        categories: Optional[Iterable[str]] = None,
        guidelines: Optional[Iterable[str]] = None,
        exclude_guidelines: Optional[Iterable[str]] = None,
) -> List[RuleDefinition]:
    """
    Filters rule definitions by category and guideline id, preserving order.
    An empty or missing `categories`/`guidelines` filter selects everything.
    """
    category_set = set(categories or ())
    guideline_set = set(guidelines or ())
    excluded = set(exclude_guidelines or ())

    return [
        d for d in definitions
        if (not category_set or d.category in category_set)
        and (not guideline_set or d.guideline_id in guideline_set)
        and d.guideline_id not in excluded
    ]
