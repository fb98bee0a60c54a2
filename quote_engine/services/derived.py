"""
Derived-value calculation for DerivedCalc parameters.

Derived parameters are evaluated in dependency order (a topological sort over
their ``dependencies``), and the pass is then repeated until no value changes.
The repeat is only a safety net for cyclic configurations: it is capped, and
hitting the cap is logged rather than raised.
"""

import heapq
import logging
from typing import Any, Dict, List, Tuple

from quote_engine.core.config import MAX_DERIVED_ITERATIONS
from quote_engine.schemas.parameter import DerivedCalcParameter, Parameter
from quote_engine.services.expression import bind_numbers, evaluate
from quote_engine.services.visibility import hidden_names, is_visible

logger = logging.getLogger(__name__)


def derived_parameters(parameters: List[Parameter]) -> List[DerivedCalcParameter]:
    return [p for p in parameters if isinstance(p, DerivedCalcParameter)]


def dependency_order(
    parameters: List[Parameter],
) -> Tuple[List[DerivedCalcParameter], List[DerivedCalcParameter]]:
    """
    Order DerivedCalc parameters so every dependency is evaluated first.

    Kahn's algorithm; among parameters that are ready at the same time, ones
    without dependencies go first, then configuration order is kept.

    Returns:
        (ordered, cyclic): ``cyclic`` holds the parameters that could not be
        placed because they sit on a dependency cycle. They are also appended
        to ``ordered`` in configuration order so they still get evaluated.
    """
    derived = derived_parameters(parameters)
    index = {p.name: i for i, p in enumerate(derived)}

    indegree = [0] * len(derived)
    dependents: Dict[int, List[int]] = {i: [] for i in range(len(derived))}
    for i, param in enumerate(derived):
        for dep in dict.fromkeys(param.dependencies):
            j = index.get(dep)
            if j is None:
                continue  # plain input, not a derived value
            indegree[i] += 1
            dependents[j].append(i)

    def _key(i: int) -> Tuple[int, int]:
        return (1 if derived[i].dependencies else 0, i)

    ready = [_key(i) for i in range(len(derived)) if indegree[i] == 0]
    heapq.heapify(ready)

    ordered: List[DerivedCalcParameter] = []
    placed = set()
    while ready:
        _, i = heapq.heappop(ready)
        ordered.append(derived[i])
        placed.add(i)
        for k in dependents[i]:
            indegree[k] -= 1
            if indegree[k] == 0:
                heapq.heappush(ready, _key(k))

    cyclic = [p for i, p in enumerate(derived) if i not in placed]
    return ordered + cyclic, cyclic


def compute_derived_value(
    parameter: DerivedCalcParameter, values: Dict[str, Any], hidden: set = frozenset()
) -> float:
    """
    Evaluate one derived parameter against the current values.

    If any dependency is hidden, missing or not numeric the result is 0;
    the formula is never partially computed.
    """
    if any(dep in hidden for dep in parameter.dependencies):
        return 0.0
    bindings = bind_numbers(parameter.dependencies, values)
    if bindings is None:
        return 0.0
    return evaluate(parameter.formula, bindings)


def resolve_derived_values(
    parameters: List[Parameter],
    values: Dict[str, Any],
    max_iterations: int = MAX_DERIVED_ITERATIONS,
) -> Dict[str, Any]:
    """
    Return a copy of ``values`` with every visible DerivedCalc value computed.

    Args:
        parameters: The parameter set
        values: Submitted field values (not modified)
        max_iterations: Cap on recompute passes

    Returns:
        New field values; derived entries are floats.
    """
    resolved = dict(values)
    hidden = hidden_names(parameters, values)

    visible_derived = [
        p for p in derived_parameters(parameters) if is_visible(p, values) and p.formula
    ]
    if not visible_derived:
        return resolved

    ordered, cyclic = dependency_order(visible_derived)
    if cyclic:
        logger.warning(
            f"Dependency cycle between derived parameters: {', '.join(p.name for p in cyclic)}"
        )

    for iteration in range(1, max_iterations + 1):
        changed = False
        for param in ordered:
            result = compute_derived_value(param, resolved, hidden)
            if resolved.get(param.name) != result:
                resolved[param.name] = result
                changed = True
        if not changed:
            logger.debug(f"Derived values settled after {iteration} pass(es)")
            break
    else:
        logger.warning(
            f"Derived values did not settle after {max_iterations} passes; "
            "check the parameter set for circular formulas"
        )

    return resolved
