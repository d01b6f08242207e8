from __future__ import annotations

from collections import deque
from typing import Iterable

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from dndinit.core.engine.commands import AddCombatant
from dndinit.core.engine.rules.apply import apply_command
from dndinit.core.engine.state import EncounterState, Faction
from dndinit.db.base import Base
import dndinit.db.models  # noqa: F401
import dndinit.db.session as db_session
import dndinit.db.init_db as db_init


@pytest.fixture(scope="session")
def engine():
    # SQLite in-memory (один коннект на всю сессию тестов)
    eng = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    return eng


@pytest.fixture(scope="session")
def TestingSessionLocal(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


@pytest.fixture(scope="session", autouse=True)
def _patch_db(engine, TestingSessionLocal):
    # патчим "боевые" engine/SessionLocal на тестовые
    db_session.engine = engine
    db_session.SessionLocal = TestingSessionLocal

    db_init.engine = engine

    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db(TestingSessionLocal):
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        # чистим таблицы между тестами
        for table in reversed(Base.metadata.sorted_tables):
            session.execute(table.delete())
        session.commit()
        session.close()


class ScriptedRng:
    """Подменяет state.rng: randint отдаёт заранее заданные значения по очереди."""

    def __init__(self, values: Iterable[int]) -> None:
        self.values = deque(values)
        self.calls = 0

    def push(self, *values: int) -> None:
        self.values.extend(values)

    def randint(self, a: int, b: int) -> int:
        self.calls += 1
        if not self.values:
            raise AssertionError("ScriptedRng: no more scripted rolls")
        v = self.values.popleft()
        assert a <= v <= b, f"scripted roll {v} outside {a}..{b}"
        return v


@pytest.fixture()
def dice():
    """dice(state, 20, 1, 15) -> фиксированные броски d20 для state."""

    def _install(state: EncounterState, *values: int) -> ScriptedRng:
        rng = ScriptedRng(values)
        state.rng = rng  # type: ignore[assignment]
        return rng

    return _install


def _add(
    state: EncounterState,
    name: str,
    initiative: int,
    max_hp: int = 10,
    *,
    dexterity: int = 0,
    faction: Faction = Faction.ENEMY,
) -> int:
    """Добавить бойца через команду и вернуть его id."""
    state, ev = apply_command(
        state,
        AddCombatant(
            faction=faction,
            name=name,
            initiative=initiative,
            dexterity=dexterity,
            max_hp=max_hp,
        ),
    )
    assert ev[-1]["type"] == "CombatantAdded", ev
    return ev[-1]["payload"]["combatant_id"]


@pytest.fixture()
def add():
    return _add


