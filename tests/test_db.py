import pytest
from sqlalchemy import inspect, text

import deskhound.util.db as db_module


class TestConfigureEngine:
    def test_configure_engine_returns_engine(self) -> None:
        engine = db_module.configure_engine("sqlite:///:memory:")
        assert engine is not None

    def test_configure_engine_sets_module_engine(self) -> None:
        engine = db_module.configure_engine("sqlite:///:memory:")
        assert db_module.get_engine() is engine

    def teardown_method(self) -> None:
        db_module._engine = None


class TestGetEngine:
    def setup_method(self) -> None:
        db_module._engine = None

    def test_raises_before_configure(self) -> None:
        with pytest.raises(RuntimeError, match="Database engine not configured"):
            db_module.get_engine()

    def teardown_method(self) -> None:
        db_module._engine = None


class TestGetSession:
    def setup_method(self) -> None:
        db_module._engine = None

    def test_get_session_yields_session(self) -> None:
        db_module.configure_engine("sqlite:///:memory:")
        with db_module.get_session() as session:
            result = session.execute(text("SELECT 1"))
            assert result.scalar() == 1

    def test_get_session_raises_without_engine(self) -> None:
        with pytest.raises(RuntimeError), db_module.get_session():
            pass

    def teardown_method(self) -> None:
        db_module._engine = None


class TestInitDb:
    def teardown_method(self) -> None:
        db_module._engine = None

    def test_creates_messages_table(self) -> None:
        engine = db_module.configure_engine("sqlite:///:memory:")

        db_module.init_db()

        assert "messages" in inspect(engine).get_table_names()

    def test_is_repeatable(self) -> None:
        db_module.configure_engine("sqlite:///:memory:")

        db_module.init_db()
        db_module.init_db()
