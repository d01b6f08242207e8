import logging
from pathlib import Path

import pytest
from pydantic import ValidationError

from dndinit.config import TrackerConfig, load_config, setup_logging
from dndinit.core.engine.state import EncounterState
from dndinit.core.persistence.runtime_store import log_export_store, save_file_store


def test_defaults():
    cfg = load_config(env={"HOME": "/home/dm"})

    assert cfg.max_combatants == 50
    assert cfg.undo_capacity == 10
    assert cfg.log_max_capacity is None
    assert cfg.save_file_name == ".dnd_tracker_save.txt"
    assert cfg.log_export_file_name == "combat_log_export.txt"


def test_env_overrides(tmp_path):
    cfg = load_config(
        env={
            "DNDINIT_MAX_COMBATANTS": "5",
            "DNDINIT_UNDO_CAPACITY": "3",
            "DNDINIT_DATA_DIR": str(tmp_path),
            "DNDINIT_LOG_LEVEL": "DEBUG",
            "DNDINIT_LOG_MAX_CAPACITY": "",
        }
    )

    assert cfg.max_combatants == 5
    assert cfg.undo_capacity == 3
    assert cfg.log_level == "DEBUG"
    assert cfg.log_max_capacity is None
    assert cfg.save_path == tmp_path / ".dnd_tracker_save.txt"
    assert save_file_store(cfg).path == tmp_path / ".dnd_tracker_save.txt"
    assert log_export_store(cfg).path == tmp_path / "combat_log_export.txt"


def test_invalid_values_raise():
    with pytest.raises(ValidationError):
        load_config(env={"DNDINIT_UNDO_CAPACITY": "0"})
    with pytest.raises(ValidationError):
        load_config(env={"DNDINIT_MAX_COMBATANTS": "many"})


def test_state_from_config():
    cfg = TrackerConfig(max_combatants=4, undo_capacity=2, log_initial_capacity=3, data_dir=Path("."))

    state = EncounterState.from_config(cfg)

    assert state.max_combatants == 4
    assert state.undo_capacity == 2
    assert state.log.capacity == 3


def test_setup_logging_applies_level():
    setup_logging(TrackerConfig(log_level="warning"))

    assert logging.getLogger().isEnabledFor(logging.WARNING)
