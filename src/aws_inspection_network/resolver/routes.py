"""Flattened route views and fuzzy prefix search over a resolved topology."""

from typing import Iterator

from thefuzz import fuzz

from .pipeline import ResolutionResult


def iter_routes(result: ResolutionResult) -> Iterator[dict]:
    """Yield every transit gateway and VPC route as a display row."""
    tgw = result.topology.transit_gateway
    for table in tgw.route_tables:
        for route in table.routes:
            yield {
                "route_table": f"{tgw.label} → {table.label}",
                "kind": f"tgw-{table.kind}",
                "prefix": route.prefix,
                "target": route.target or "-",
                "state": route.state,
                "type": route.type,
            }
    for vpc in result.topology.vpcs:
        for table in vpc.route_tables:
            for route in table.routes:
                yield {
                    "route_table": f"{vpc.label} → {table.label}",
                    "kind": f"vpc-{table.tier}",
                    "prefix": route.destination,
                    "target": route.target,
                    "state": route.state,
                    "type": route.type,
                }


def search_routes(
    result: ResolutionResult, query: str, min_score: int = 60, max_results: int = 50
) -> list[dict]:
    matches = []
    needle = query.lower()
    for route in iter_routes(result):
        prefix = route["prefix"].lower()
        score = fuzz.partial_ratio(needle, prefix)
        if needle in prefix:
            score = max(score, 90)
        if needle == prefix:
            score = 100
        if score >= min_score:
            matches.append({**route, "score": score})
    matches.sort(key=lambda m: (-m["score"], m["route_table"]))
    return matches[:max_results]
