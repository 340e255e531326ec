"""Tests for flattened route views and fuzzy prefix search."""

from aws_inspection_network.resolver import iter_routes, search_routes


class TestIterRoutes:
    def test_transit_gateway_rows(self, resolved):
        rows = [r for r in iter_routes(resolved) if r["kind"].startswith("tgw-")]
        # two hub routes back to the spokes, one default route per spoke table
        assert len(rows) == 4
        assert sorted(r["kind"] for r in rows) == [
            "tgw-hub",
            "tgw-hub",
            "tgw-spoke",
            "tgw-spoke",
        ]

    def test_vpc_rows(self, resolved):
        rows = [r for r in iter_routes(resolved) if r["kind"] == "vpc-firewall"]
        prefixes = {r["prefix"] for r in rows}
        assert prefixes == {"10.0.0.0/16", "0.0.0.0/0", "10.1.0.0/16", "10.2.0.0/16"}

    def test_row_keys(self, resolved):
        row = next(iter_routes(resolved))
        assert set(row) == {"route_table", "kind", "prefix", "target", "state", "type"}
        assert "→" in row["route_table"]


class TestSearchRoutes:
    def test_exact_prefix_scores_100(self, resolved):
        matches = search_routes(resolved, "10.2.0.0/16")
        assert matches[0]["score"] == 100
        exact = [m for m in matches if m["score"] == 100]
        # hub TGW route, six hub return routes and the spoke local route
        assert len(exact) == 8
        assert all(m["prefix"] == "10.2.0.0/16" for m in exact)

    def test_substring_match(self, resolved):
        matches = search_routes(resolved, "10.2", min_score=90)
        assert matches
        assert all("10.2" in m["prefix"] for m in matches)

    def test_sorted_by_score_then_table(self, resolved):
        matches = search_routes(resolved, "10.1.0.0/16")
        keys = [(-m["score"], m["route_table"]) for m in matches]
        assert keys == sorted(keys)

    def test_max_results(self, resolved):
        assert len(search_routes(resolved, "0.0.0.0/0", max_results=3)) == 3

    def test_no_match(self, resolved):
        assert search_routes(resolved, "zzzz") == []
