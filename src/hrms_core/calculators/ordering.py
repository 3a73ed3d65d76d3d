"""Calculation order for salary structure components.

Components are ordered by an explicit dependency graph built from what each
component references (percentage base, formula identifiers, declared
dependencies), so a component is never evaluated before something it reads.
Among components that are ready at the same time the conventional order
applies: BASIC first, FIXED before derived types, EARNING before DEDUCTION,
then the configured order.
"""

from __future__ import annotations

import heapq
from collections.abc import Sequence
from dataclasses import dataclass, field

from hrms_core.calculators.formula import FormulaError, referenced_names
from hrms_core.calculators.types import (
    CalculationType,
    PayComponentCategory,
    PayComponentType,
    SalaryStructure,
    StructureComponent,
)
from hrms_core.exceptions import StructureConfigurationError


@dataclass
class CalculationPlan:
    """Components in evaluation order plus any that cannot be ordered."""

    ordered: list[StructureComponent]
    blocked: dict[str, str] = field(default_factory=dict)  # code -> reason

    @property
    def is_valid(self) -> bool:
        return not self.blocked


def sort_key(sc: StructureComponent) -> tuple:
    component = sc.component
    return (
        component.category != PayComponentCategory.BASIC,
        component.calculation_type != CalculationType.FIXED,
        component.type != PayComponentType.EARNING,
        sc.order,
        component.code,
    )


def direct_references(sc: StructureComponent) -> set[str]:
    """Raw tokens a component reads (reserved bases and component codes)."""
    component = sc.component
    refs: set[str] = set(component.depends_on)

    if component.calculation_type == CalculationType.PERCENTAGE:
        refs.add(sc.base_component or "CTC")
    elif component.calculation_type == CalculationType.FORMULA and component.formula:
        try:
            refs |= referenced_names(component.formula)
        except FormulaError:
            pass  # reported when the formula is evaluated

    return refs


def build_dependency_graph(
    components: Sequence[StructureComponent],
) -> dict[str, set[str]]:
    """Map each component code to the codes it must wait for."""
    by_code = {sc.code: sc for sc in components}
    references = {sc.code: direct_references(sc) for sc in components}

    basic_codes = {
        sc.code for sc in components
        if sc.component.category == PayComponentCategory.BASIC
    }

    graph: dict[str, set[str]] = {}
    for code, refs in references.items():
        deps: set[str] = set()
        for ref in refs:
            if ref in ("CTC", "GROSS"):
                continue
            if ref == "BASIC":
                deps |= basic_codes
            elif ref in by_code:
                deps.add(ref)
        deps.discard(code)
        graph[code] = deps

    # GROSS means "earnings computed so far". Anything downstream of a GROSS
    # reader is computed after GROSS is read, so it is not part of it.
    gross_readers = downstream_of(
        graph, {code for code, refs in references.items() if "GROSS" in refs}
    )
    gross_codes = {
        sc.code for sc in components
        if sc.component.type == PayComponentType.EARNING
        and sc.code not in gross_readers
    }
    for code in gross_readers:
        if "GROSS" in references[code]:
            graph[code] |= gross_codes - {code}

    return graph


def downstream_of(graph: dict[str, set[str]], roots: set[str]) -> set[str]:
    """Codes in ``roots`` plus every code that depends on one of them."""
    dependents: dict[str, set[str]] = {code: set() for code in graph}
    for code, deps in graph.items():
        for dep in deps:
            dependents[dep].add(code)

    found = set(roots)
    stack = list(roots)
    while stack:
        for dependent in dependents[stack.pop()]:
            if dependent not in found:
                found.add(dependent)
                stack.append(dependent)
    return found


def plan_calculation(structure: SalaryStructure) -> CalculationPlan:
    """Topologically order a structure's components."""
    components = list(structure.components)
    by_code = {sc.code: sc for sc in components}
    graph = build_dependency_graph(components)

    dependents: dict[str, set[str]] = {code: set() for code in graph}
    remaining = {code: len(deps) for code, deps in graph.items()}
    for code, deps in graph.items():
        for dep in deps:
            dependents[dep].add(code)

    ready = [(sort_key(by_code[code]), code) for code, count in remaining.items() if count == 0]
    heapq.heapify(ready)

    ordered: list[StructureComponent] = []
    while ready:
        _, code = heapq.heappop(ready)
        ordered.append(by_code[code])
        for dependent in dependents[code]:
            remaining[dependent] -= 1
            if remaining[dependent] == 0:
                heapq.heappush(ready, (sort_key(by_code[dependent]), dependent))

    blocked: dict[str, str] = {}
    leftovers = sorted(
        (code for code, count in remaining.items() if count > 0),
        key=lambda c: sort_key(by_code[c]),
    )
    if leftovers:
        cycle = find_cycle(graph, set(leftovers))
        for code in leftovers:
            if code in cycle:
                blocked[code] = f"Circular dependency: {' -> '.join(cycle + [cycle[0]])}"
            else:
                waiting = sorted(dep for dep in graph[code] if dep in leftovers)
                blocked[code] = f"Depends on unresolved component(s): {', '.join(waiting)}"
        ordered.extend(by_code[code] for code in leftovers)

    return CalculationPlan(ordered=ordered, blocked=blocked)


def find_cycle(graph: dict[str, set[str]], candidates: set[str]) -> list[str]:
    """Return one dependency cycle among ``candidates`` (empty if none)."""
    visiting: list[str] = []
    on_path: set[str] = set()
    done: set[str] = set()

    def visit(code: str) -> list[str]:
        visiting.append(code)
        on_path.add(code)
        for dep in sorted(graph[code] & candidates):
            if dep in on_path:
                return visiting[visiting.index(dep):]
            if dep not in done:
                found = visit(dep)
                if found:
                    return found
        on_path.discard(code)
        visiting.pop()
        done.add(code)
        return []

    for code in sorted(candidates):
        if code not in done:
            found = visit(code)
            if found:
                return found
    return []


def validate_structure(structure: SalaryStructure) -> CalculationPlan:
    """Check a structure can be calculated; raise on configuration errors.

    Intended for structure-save time so misconfigurations surface before
    a pay run.
    """
    seen: set[str] = set()
    for sc in structure.components:
        if sc.code in seen:
            raise StructureConfigurationError(f"Duplicate component code '{sc.code}' in structure")
        seen.add(sc.code)

    plan = plan_calculation(structure)
    if not plan.is_valid:
        cycle = find_cycle(
            build_dependency_graph(list(structure.components)), set(plan.blocked)
        )
        reasons = "; ".join(f"{code}: {reason}" for code, reason in plan.blocked.items())
        raise StructureConfigurationError(
            f"Salary structure '{structure.name}' cannot be ordered ({reasons})",
            cycle=cycle,
        )
    return plan
