"""Tests for the loguru configuration helpers."""

from loguru import logger

from traffic_controller.core.logging import _scope_matches, configure_logging


class TestConfigureLogging:
    def test_debug_scopes_add_a_filtered_handler(self) -> None:
        try:
            handlers = configure_logging("INFO", debug_scopes=("controller", " "))
            assert len(handlers) == 2
        finally:
            logger.remove()

    def test_no_scopes_single_handler(self) -> None:
        try:
            assert len(configure_logging("DEBUG", debug_scopes=("controller",))) == 1
        finally:
            logger.remove()

    def test_blank_scopes_are_ignored(self) -> None:
        try:
            assert len(configure_logging("INFO", debug_scopes=(" ", ""))) == 1
        finally:
            logger.remove()


class TestScopeMatches:
    def test_short_scope_matches_package_module(self) -> None:
        assert _scope_matches(
            "traffic_controller.controller.reconcile_loop", ("controller",)
        )

    def test_full_scope_matches(self) -> None:
        assert _scope_matches(
            "traffic_controller.store.dynamodb", ("traffic_controller.store",)
        )

    def test_other_modules_do_not_match(self) -> None:
        assert not _scope_matches("traffic_controller.store.dynamodb", ("controller",))
