import pytest
from loguru import logger

from stepseries.logger import configure_logging


def test_configure_logging_routes_to_sink():
    lines = []
    handler = configure_logging("DEBUG", sink=lines.append)
    try:
        logger.debug("weekly: 7 points")
    finally:
        logger.remove(handler)
    assert len(lines) == 1
    assert "weekly: 7 points" in lines[0]
    assert "DEBUG" in lines[0]


def test_configure_logging_filters_below_level():
    lines = []
    handler = configure_logging("warning", sink=lines.append)
    try:
        logger.info("dropped")
        logger.warning("kept")
    finally:
        logger.remove(handler)
    assert [line for line in lines if "kept" in line]
    assert not [line for line in lines if "dropped" in line]


def test_configure_logging_rejects_unknown_level():
    with pytest.raises(ValueError):
        configure_logging("LOUD")
