from pathlib import Path

from truthlens.shared.migrations import VERSIONS_DIR


def test_initial_schema_defines_tables():
    sql = (VERSIONS_DIR / "000_initial_schema.sql").read_text(encoding="utf-8")
    for table in ("users", "admin_setup_tokens", "system_settings"):
        assert f"CREATE TABLE IF NOT EXISTS {table}" in sql
    assert "'pending', 'used', 'expired', 'revoked'" in sql


def test_versions_are_numbered():
    names = [p.name for p in sorted(Path(VERSIONS_DIR).glob("*.sql"))]
    assert names
    assert all(name[:3].isdigit() and name[3] == "_" for name in names)
