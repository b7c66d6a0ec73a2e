"""Tests for controller settings and the annotation filter."""

import pytest

from traffic_controller.config import (
    DEFAULT_ANNOTATION_PREFIX,
    AnnotationFilter,
    BackendType,
    ControllerSettings,
)
from traffic_controller.core.errors import ConfigurationError

from tests.builders import make_settings


class TestAnnotationFilter:
    def test_parse_key_value(self) -> None:
        assert AnnotationFilter.parse("foo=bar") == AnnotationFilter("foo", "bar")

    @pytest.mark.parametrize("raw", [None, "", "foo", "a=b=c"])
    def test_anything_else_matches_all(self, raw) -> None:
        parsed = AnnotationFilter.parse(raw)
        assert parsed.match_all
        assert parsed.matches({})

    def test_empty_value_is_a_real_filter(self) -> None:
        parsed = AnnotationFilter.parse("foo=")
        assert not parsed.match_all
        assert parsed.matches({"foo": ""})
        assert not parsed.matches({"foo": "bar"})

    def test_matches(self) -> None:
        flt = AnnotationFilter("foo", "bar")
        assert flt.matches({"foo": "bar", "other": "x"})
        assert not flt.matches({"foo": "notbar"})
        assert not flt.matches({})


class TestControllerSettings:
    def test_defaults(self) -> None:
        settings = ControllerSettings()
        assert settings.backend_type == BackendType.FAKE
        assert settings.annotation_prefix == DEFAULT_ANNOTATION_PREFIX
        assert settings.reconcile_interval == 20.0
        assert settings.deleting_requeue_delay == 5.0
        assert settings.metrics_addr == ":8080"

    def test_weight_annotation_uses_prefix(self) -> None:
        settings = make_settings(annotation_prefix="example.com")
        assert settings.weight_annotation == "example.com/traffic-weight"

    def test_valid_settings(self) -> None:
        make_settings(backend_type="dynamoDB").validate()

    @pytest.mark.parametrize(
        "overrides",
        [
            {"cluster_name": ""},
            {"backend_type": "etcd"},
            {"backend_type": "dynamoDB", "aws_region": ""},
            {"initial_weight": -1},
            {"reconcile_interval": 0},
            {"workers": 0},
            {"metrics_addr": "localhost:abc"},
            {"metrics_addr": ":70000"},
        ],
    )
    def test_invalid_settings(self, overrides) -> None:
        with pytest.raises(ConfigurationError):
            make_settings(**overrides).validate()

    def test_fake_backend_does_not_need_region(self) -> None:
        make_settings(aws_region="").validate()

    def test_metrics_can_be_disabled(self) -> None:
        make_settings(metrics_addr="0").validate()
