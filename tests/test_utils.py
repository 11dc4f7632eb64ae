"""Tests for cross-cutting utils: logging, hashing, profiling.

Covers:
- Logging idempotency, JSON file output, contextual fields
- ContextFormatter human/JSON modes and validation
- sha256_array / hash_dict determinism and sensitivity
- profiler.timer and StageTimings

Run with: pytest tests/test_utils.py -v
"""

import json
import logging

import numpy as np
import pytest

from src.utils import hashing, logging_config, profiler


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def clean_logging():
    """Detach handlers and context installed by a test."""
    yield
    logging_config.shutdown()


# ============================================================================
# LOGGING TESTS
# ============================================================================

def test_logging_idempotency(tmp_path, clean_logging):
    """Reconfiguring does not duplicate handlers."""
    log_path = tmp_path / "render.log"

    logging_config.setup_logging(
        log_level="INFO",
        log_file=str(log_path),
        json=True,
        to_stderr=False,
        context={"app": "shadow_mask"}
    )
    logger = logging.getLogger("utils_test")
    logger.info("hello")

    logging_config.setup_logging(
        log_level="INFO",
        log_file=str(log_path),
        json=True,
        to_stderr=False,
        context={"app": "shadow_mask"}
    )
    logger.info("world")

    lines = log_path.read_text().strip().splitlines()
    assert len(lines) == 2

    rec = json.loads(lines[0])
    assert rec["msg"] == "hello"
    assert rec["app"] == "shadow_mask"
    assert rec["lvl"] == "INFO"


def test_log_level_filters(tmp_path, clean_logging):
    log_path = tmp_path / "warn.log"
    logging_config.setup_logging(log_level="WARNING", log_file=str(log_path), to_stderr=False)
    logger = logging.getLogger("utils_test")
    logger.info("dropped")
    logger.warning("kept")

    text = log_path.read_text()
    assert "kept" in text
    assert "dropped" not in text


def test_unknown_log_level(clean_logging):
    with pytest.raises(ValueError, match="Unknown log level"):
        logging_config.setup_logging(log_level="CHATTY")


def test_shutdown_detaches_handlers(tmp_path):
    info = logging_config.setup_logging(log_file=str(tmp_path / "a.log"), to_stderr=False)
    handler = info['handlers'][0]
    assert handler in logging.getLogger().handlers

    logging_config.shutdown()
    assert handler not in logging.getLogger().handlers


def test_push_pop_context(clean_logging):
    formatter = logging_config.ContextFormatter("json")
    record = logging.LogRecord("t", logging.INFO, __file__, 1, "msg", None, None)

    logging_config.push_context(input="title.png", mask="DELTA")
    rec = json.loads(formatter.format(record))
    assert rec["input"] == "title.png"
    assert rec["mask"] == "DELTA"

    logging_config.pop_context(["mask"])
    rec = json.loads(formatter.format(record))
    assert "mask" not in rec
    assert rec["input"] == "title.png"

    logging_config.pop_context()
    rec = json.loads(formatter.format(record))
    assert "input" not in rec


def test_human_format(clean_logging):
    formatter = logging_config.ContextFormatter("human", use_color=False)
    record = logging.LogRecord("t", logging.WARNING, __file__, 1, "beam step %d", (3,), None)
    logging_config.push_context(app="shadow_mask")

    line = formatter.format(record)
    assert "WARNING" in line
    assert "app=shadow_mask" in line
    assert line.endswith("beam step 3")


def test_formatter_rejects_unknown_mode():
    with pytest.raises(ValueError, match="Unknown format mode"):
        logging_config.ContextFormatter("xml")


def test_json_includes_thread_and_logger(tmp_path, clean_logging):
    log_path = tmp_path / "j.log"
    logging_config.setup_logging(log_file=str(log_path), json=True, to_stderr=False)
    logging.getLogger("src.crt_simulator.pipeline").info("Saved out.png")

    rec = json.loads(log_path.read_text().strip())
    assert rec["logger"] == "src.crt_simulator.pipeline"
    assert rec["thread"] == "MainThread"
    assert rec["msg"] == "Saved out.png"


# ============================================================================
# HASHING TESTS
# ============================================================================

def test_sha256_array_consistent():
    a = np.arange(24, dtype=np.uint8).reshape(2, 3, 4)
    h = hashing.sha256_array(a)
    assert h == hashing.sha256_array(a.copy())
    assert len(h) == 64


def test_sha256_array_sensitive_to_values_shape_dtype():
    a = np.zeros((2, 8), dtype=np.uint8)
    b = a.copy()
    b[1, 7] = 1
    assert hashing.sha256_array(a) != hashing.sha256_array(b)
    assert hashing.sha256_array(a) != hashing.sha256_array(a.reshape(8, 2))
    assert hashing.sha256_array(a) != hashing.sha256_array(a.view(np.int8))


def test_sha256_array_non_contiguous():
    a = np.arange(16, dtype=np.uint8).reshape(4, 4)
    assert hashing.sha256_array(a.T) == hashing.sha256_array(np.ascontiguousarray(a.T))


def test_hash_dict_key_order_independent():
    assert hashing.hash_dict({'a': 1, 'b': [1, 2]}) == hashing.hash_dict({'b': [1, 2], 'a': 1})
    assert hashing.hash_dict({'a': 1}) != hashing.hash_dict({'a': 2})


# ============================================================================
# PROFILER TESTS
# ============================================================================

def test_profiler_timer():
    times = []
    with profiler.timer('compose', sink=lambda n, t: times.append((n, t))):
        np.zeros((100, 100)).sum()

    assert len(times) == 1
    assert times[0][0] == 'compose'
    assert times[0][1] >= 0


def test_profiler_timer_prints_without_sink(capsys):
    with profiler.timer('load'):
        pass
    assert capsys.readouterr().out.startswith("load: ")


def test_stage_timings_accumulate():
    timings = profiler.StageTimings()
    with timings.stage("render"):
        pass
    with timings.stage("render"):
        pass
    with timings.stage("save"):
        pass

    d = timings.as_dict()
    assert list(d) == ["render", "save"]
    assert timings.total == pytest.approx(d["render"] + d["save"])


def test_stage_timings_records_on_error():
    timings = profiler.StageTimings()
    with pytest.raises(RuntimeError):
        with timings.stage("bloom"):
            raise RuntimeError("boom")
    assert "bloom" in timings.as_dict()
