"""TDD tests for the display renderer - Binary pass/fail."""

import pytest

from aws_inspection_network.core.renderer import DisplayRenderer
from aws_inspection_network.models import Diagnostic
from aws_inspection_network.resolver import build_plan, iter_routes


@pytest.fixture
def renderer(mock_console):
    r = DisplayRenderer(console=mock_console)
    r._output = mock_console._output
    return r


class TestRenderFormat:
    """Binary tests for format rendering."""

    def test_json_format_returns_true(self, renderer):
        """BINARY: JSON format must return True."""
        assert renderer.render({"id": "tgw-123"}, fmt="json") is True

    def test_yaml_format_returns_true(self, renderer):
        """BINARY: YAML format must return True."""
        assert renderer.render({"id": "tgw-123"}, fmt="yaml") is True

    def test_table_format_returns_false(self, renderer):
        """BINARY: Table format must return False."""
        assert renderer.render([{"id": "tgw-123"}], fmt="table") is False

    def test_outputs_as_json(self, renderer, resolved):
        renderer.render(resolved.outputs, fmt="json")
        output = renderer._output.getvalue()
        assert resolved.topology.transit_gateway.id in output
        assert "nonprod" in output


class TestTableRendering:
    def test_empty_table(self, renderer):
        """BINARY: Empty data prints a 'No ... found' line."""
        renderer.table([], "Routes", [{"name": "Prefix", "key": "prefix"}])
        assert "No routes found" in renderer._output.getvalue()

    def test_list_values_joined(self, renderer):
        renderer.table(
            [{"ids": ["subnet-1", "subnet-2"]}],
            "Subnets",
            [{"name": "IDs", "key": "ids"}],
        )
        assert "subnet-1, subnet-2" in renderer._output.getvalue()

    def test_hint(self, renderer):
        renderer.table(
            [{"id": "x"}], "Things", [{"name": "ID", "key": "id"}], hint="try --help"
        )
        assert "try --help" in renderer._output.getvalue()


class TestResolverViews:
    def test_outputs_panel_and_spokes(self, renderer, resolved):
        renderer.outputs(resolved.outputs)
        output = renderer._output.getvalue()
        assert "Inspection Hub" in output
        assert resolved.hub.firewall_policy.id in output
        assert resolved.spoke("prod").attachment.id in output

    def test_routes_with_score_column(self, renderer, resolved):
        rows = [{**r, "score": 100} for r in iter_routes(resolved)][:2]
        renderer.routes(rows, "Matches")
        assert "Score" in renderer._output.getvalue()

    def test_routes_without_score_column(self, renderer, resolved):
        renderer.routes(list(iter_routes(resolved))[:2], "Routes")
        assert "Score" not in renderer._output.getvalue()

    def test_diagnostics(self, renderer):
        renderer.diagnostics(
            [
                Diagnostic(
                    severity="warning",
                    code="APPLIANCE_MODE",
                    message="appliance mode disabled",
                    entity_ref="inspection",
                )
            ]
        )
        output = renderer._output.getvalue()
        assert "APPLIANCE_MODE" in output
        assert "warning" in output

    def test_no_diagnostics(self, renderer):
        """BINARY: Empty findings print a status line, not a table."""
        renderer.diagnostics([])
        assert "No validation findings" in renderer._output.getvalue()

    def test_plan(self, renderer, resolved):
        resources = build_plan(resolved).to_dict()["resources"]
        renderer.plan(resources[:3])
        assert "aws_ec2_transit_gateway.main" in renderer._output.getvalue()

    def test_plan_as_yaml(self, renderer, resolved):
        renderer.render(build_plan(resolved).to_dict(), fmt="yaml")
        assert "aws_networkfirewall_firewall.main" in renderer._output.getvalue()
