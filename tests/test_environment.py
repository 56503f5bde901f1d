"""
Environment variable resolution and the .env file.
"""
import pytest

from rebuild_ci.environment import render_env_file, resolve_variables, write_env_file
from rebuild_ci.errors import IOFailure
from rebuild_ci.models import PRODUCTION, STAGING
from rebuild_ci.stages.env_file import excluded_prefixes, prefix_rules


# ---------------------------------------------------------------------------
# 1. Prefix filtering
# ---------------------------------------------------------------------------
class TestResolveVariables:

    def test_strips_prefix_and_keeps_values(self):
        environ = {"REBUILD_API_KEY": "a=b c", "PATH": "/bin", "REBUILD_DB": ""}
        assert resolve_variables(environ, ["REBUILD_"]) == {"API_KEY": "a=b c", "DB": ""}

    def test_keeps_order_of_first_appearance(self):
        environ = {"REBUILD_Z": "1", "OTHER": "x", "REBUILD_A": "2", "REBUILD_M": "3"}
        assert list(resolve_variables(environ, ["REBUILD_"])) == ["Z", "A", "M"]

    def test_ignores_unprefixed_and_empty_keys(self):
        environ = {"HOME": "/root", "REBUILD_": "nothing", "NOT_REBUILD_X": "1"}
        assert resolve_variables(environ, ["REBUILD_"]) == {}

    def test_specific_prefix_overrides_generic_after(self):
        environ = {"REBUILD_URL": "generic", "REBUILD_STAGING_URL": "staging"}
        resolved = resolve_variables(environ, ["REBUILD_STAGING_", "REBUILD_"])
        assert resolved == {"URL": "staging"}

    def test_specific_prefix_overrides_generic_before(self):
        environ = {"REBUILD_STAGING_URL": "staging", "REBUILD_URL": "generic"}
        resolved = resolve_variables(environ, ["REBUILD_STAGING_", "REBUILD_"])
        assert resolved == {"URL": "staging"}

    def test_override_keeps_first_position(self):
        environ = {"REBUILD_URL": "generic", "REBUILD_NAME": "n", "REBUILD_STAGING_URL": "s"}
        resolved = resolve_variables(environ, ["REBUILD_STAGING_", "REBUILD_"])
        assert list(resolved.items()) == [("URL", "s"), ("NAME", "n")]

    def test_excluded_prefixes_are_dropped(self):
        environ = {"REBUILD_PRODUCTION_SECRET": "prod", "REBUILD_SHARED": "x"}
        resolved = resolve_variables(
            environ, prefix_rules(STAGING), exclude=excluded_prefixes(STAGING)
        )
        assert resolved == {"SHARED": "x"}

    def test_resolved_keys_never_start_with_matched_prefix(self):
        environ = {f"REBUILD_KEY_{i}": str(i) for i in range(20)}
        resolved = resolve_variables(environ, ["REBUILD_"])
        assert all(not key.startswith("REBUILD_") for key in resolved)
        assert list(resolved.values()) == [str(i) for i in range(20)]


class TestPrefixRules:

    def test_shared_only_without_environment(self):
        assert prefix_rules(None) == ("REBUILD_",)
        assert excluded_prefixes(None) == ()

    def test_production_rules(self):
        assert prefix_rules(PRODUCTION) == ("REBUILD_PRODUCTION_", "REBUILD_")
        assert excluded_prefixes(PRODUCTION) == ("REBUILD_STAGING_",)


# ---------------------------------------------------------------------------
# 2. Writing the file
# ---------------------------------------------------------------------------
class TestWriteEnvFile:

    def test_render_has_no_trailing_newline(self):
        assert render_env_file({"A": "1", "B": "2"}) == "A=1\nB=2"

    def test_overwrites_previous_content(self, tmp_path):
        path = tmp_path / ".env"
        path.write_text("OLD=1\nSTALE=2\n")
        write_env_file(path, {"NEW": "3"})
        assert path.read_text() == "NEW=3"

    def test_unwritable_destination_raises_io_failure(self, tmp_path):
        path = tmp_path / "missing-dir" / ".env"
        with pytest.raises(IOFailure) as exc_info:
            write_env_file(path, {"A": "1"})
        assert exc_info.value.path == str(path)
