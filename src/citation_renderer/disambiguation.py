"""Global, retroactive disambiguation of cites that render alike."""
from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import replace
from typing import Callable, Dict, Iterable, List, Sequence

from .models import Item, ItemId, Name, Position, PositionState
from .names import initialize_given
from .renderer import NO_DISAMBIGUATION, DisambiguationState, Renderer
from .vocabulary import NAME_VARIABLES

logger = logging.getLogger(__name__)

_SHORT_FORM_POSITION = PositionState(Position.SUBSEQUENT)

GIVENNAME_RULES = (
    "all-names",
    "all-names-with-initials",
    "primary-name",
    "primary-name-with-initials",
    "by-cite",
)


class Disambiguator:
    """Track disambiguation state per cited item.

    Only the ambiguity group of a newly cited item is recomputed; callers
    compare :meth:`states` before and after to find affected items.
    """

    def __init__(self, renderer: Renderer, lookup: Callable[[ItemId], Item]):
        self.renderer = renderer
        self.lookup = lookup
        section = renderer.style.citation
        self.add_names = section.bool_option("disambiguate-add-names")
        self.add_givenname = section.bool_option("disambiguate-add-givenname")
        self.rule = section.option("givenname-disambiguation-rule", "by-cite") or "by-cite"
        if self.rule not in GIVENNAME_RULES:
            logger.warning("Unknown givenname-disambiguation-rule %r, using by-cite", self.rule)
            self.rule = "by-cite"
        self.add_year_suffix = section.bool_option("disambiguate-add-year-suffix")
        self._order: List[str] = []
        self._items: Dict[str, Item] = {}
        self._base_keys: Dict[str, str] = {}
        self._states: Dict[str, DisambiguationState] = {}
        self._name_levels: Dict[tuple, int] = {}

    # -- public -----------------------------------------------------------

    def state(self, item_id: ItemId) -> DisambiguationState:
        return self._states.get(str(item_id), NO_DISAMBIGUATION)

    def states(self) -> Dict[str, DisambiguationState]:
        return dict(self._states)

    def register(self, cited_ids: Sequence[ItemId]) -> List[str]:
        """Bring state up to date for ``cited_ids`` (first-citation order).

        Returns the keys of items whose state changed.
        """
        before = dict(self._states)
        order = [str(item_id) for item_id in cited_ids]
        new = [key for key in order if key not in self._items]
        removed = [key for key in self._items if key not in set(order)]
        reorder = order != [key for key in self._order if key in set(order)] + new

        stale_bases = {self._base_keys[key] for key in removed if key in self._base_keys}
        for key in removed:
            self._items.pop(key, None)
            self._base_keys.pop(key, None)
            self._states.pop(key, None)
        for key, item_id in zip(order, cited_ids):
            if key in new:
                self._items[key] = self.lookup(item_id)
        self._order = order

        if self.add_givenname and self.rule != "by-cite":
            self._refresh_name_levels()

        touched = set(new) | set(removed)
        if reorder or self._name_levels_changed(before):
            touched = set(order)
        for key in new:
            self._base_keys[key] = self._short_form(key, NO_DISAMBIGUATION)
        groups = self._groups_for(touched, stale_bases)
        for group in groups:
            self._resolve(group)
        for key in order:
            self._states.setdefault(key, self._initial_state())

        changed = [key for key in order if before.get(key, NO_DISAMBIGUATION) != self._states.get(key)]
        changed += [key for key in removed if key in before]
        if changed:
            logger.debug("Disambiguation changed for %s", ", ".join(changed))
        return changed

    # -- internals --------------------------------------------------------

    def _initial_state(self) -> DisambiguationState:
        return DisambiguationState(name_levels=dict(self._name_levels))

    def _name_levels_changed(self, before: Dict[str, DisambiguationState]) -> bool:
        return any(state.name_levels != self._name_levels for state in before.values())

    def _short_form(self, key: str, state: DisambiguationState) -> str:
        content = self.renderer.render_cite(self._items[key], None, _SHORT_FORM_POSITION, state)
        return self.renderer.serialize(content)

    def _groups_for(self, touched: Iterable[str], stale_bases: Iterable[str] = ()) -> List[List[str]]:
        by_key: Dict[str, List[str]] = defaultdict(list)
        for key in self._order:
            by_key[self._base_keys[key]].append(key)
        wanted = set(touched)
        stale = set(stale_bases)
        groups = []
        seen = set()
        for key in self._order:
            base = self._base_keys[key]
            if base in seen or not (base in stale or wanted.intersection(by_key[base])):
                continue
            seen.add(base)
            groups.append(by_key[base])
        return groups

    def _resolve(self, group: List[str]) -> None:
        states = {key: self._initial_state() for key in group}
        if len(group) < 2:
            self._states.update(states)
            return

        ambiguous = self._ambiguous(group, states)
        if ambiguous and self.add_names:
            ambiguous = self._expand(ambiguous, states, "add_names", range(1, self._max_names(ambiguous) + 1))
        if ambiguous and self.add_givenname and self.rule == "by-cite":
            ambiguous = self._expand(ambiguous, states, "given_level", (1, 2))
        if ambiguous:
            for key in ambiguous:
                states[key] = replace(states[key], disambiguate=True)
            ambiguous = self._ambiguous(ambiguous, states)
        if ambiguous and self.add_year_suffix:
            for members in self._collisions(ambiguous, states):
                for index, key in enumerate(members):
                    states[key] = replace(states[key], year_suffix=index)
        self._states.update(states)

    def _collisions(self, keys: Sequence[str], states: Dict[str, DisambiguationState]) -> List[List[str]]:
        """Sets of cites sharing one rendered form, each in first-citation order."""
        forms: Dict[str, List[str]] = defaultdict(list)
        wanted = set(keys)
        for key in self._order:
            if key in wanted:
                forms[self._short_form(key, states[key])].append(key)
        return [members for form, members in forms.items() if form and len(members) > 1]

    def _ambiguous(self, keys: Sequence[str], states: Dict[str, DisambiguationState]) -> List[str]:
        colliding = {key for members in self._collisions(keys, states) for key in members}
        return [key for key in keys if key in colliding]

    def _expand(self, keys: List[str], states: Dict[str, DisambiguationState], field: str, steps: Iterable[int]) -> List[str]:
        """Raise ``field`` step by step until no further cites become distinct."""
        best = self._ambiguous(keys, states)
        best_states = dict(states)
        for step in steps:
            trial = dict(states)
            for key in keys:
                trial[key] = replace(trial[key], **{field: step})
            remaining = self._ambiguous(keys, trial)
            if len(remaining) < len(best):
                best, best_states = remaining, trial
            if not remaining:
                break
        states.update(best_states)
        return best

    def _max_names(self, keys: Sequence[str]) -> int:
        longest = 0
        for key in keys:
            item = self._items[key]
            for variable in NAME_VARIABLES:
                names = item.get(variable) or []
                longest = max(longest, len(names))
        return longest

    def _refresh_name_levels(self) -> None:
        """Give-name expansion independent of cites (the all-names/primary-name rules)."""
        primary = self.rule.startswith("primary-name")
        cap = 1 if self.rule.endswith("with-initials") else 2
        by_family: Dict[str, Dict[tuple, Name]] = defaultdict(dict)
        for key in self._order:
            item = self._items[key]
            for variable in sorted(NAME_VARIABLES):
                names: List[Name] = item.get(variable) or []
                for index, name in enumerate(names):
                    if primary and index > 0 or not name.is_personal:
                        continue
                    family = f"{name.non_dropping_particle or ''} {name.family or ''}".strip()
                    by_family[family][name.key()] = name

        levels: Dict[tuple, int] = {}
        for names in by_family.values():
            if len(names) < 2:
                continue
            initials: Dict[str, int] = defaultdict(int)
            for name in names.values():
                initials[_initials_of(name)] += 1
            for name_key, name in names.items():
                levels[name_key] = 1 if initials[_initials_of(name)] == 1 else cap
        self._name_levels = levels
        for key, state in list(self._states.items()):
            self._states[key] = replace(state, name_levels=dict(levels))


def _initials_of(name: Name) -> str:
    return initialize_given(name.given or "", ".") if name.given else ""


__all__ = ["Disambiguator", "GIVENNAME_RULES"]
