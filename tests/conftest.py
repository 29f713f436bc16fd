from __future__ import annotations

import os
from collections.abc import Callable, Generator

import pytest

from adapters.layout.grid import GridRowPacker, LayoutConfig
from app.config import AppSettings, RenderSettings
from domain.models import RenderConfig
from domain.services.build_protocol_document import BuildProtocolDocument


def _clear_proto_env() -> None:
    for key in list(os.environ):
        if key.startswith("PROTO_"):
            os.environ.pop(key, None)


_clear_proto_env()


@pytest.fixture(autouse=True)
def clear_proto_env() -> Generator[None, None, None]:
    _clear_proto_env()
    yield
    _clear_proto_env()


@pytest.fixture
def render_config() -> RenderConfig:
    return RenderConfig(units_to_chars_ratio=5.0)


@pytest.fixture
def packer() -> GridRowPacker:
    return GridRowPacker(LayoutConfig())


@pytest.fixture
def pipeline(render_config: RenderConfig, packer: GridRowPacker) -> BuildProtocolDocument:
    return BuildProtocolDocument(packer, render_config)


@pytest.fixture
def render_settings() -> RenderSettings:
    return RenderSettings(units_to_chars_ratio=5.0)


@pytest.fixture
def app_settings_factory(render_settings: RenderSettings) -> Callable[..., AppSettings]:
    def _factory(**overrides: object) -> AppSettings:
        return AppSettings(render=render_settings.model_copy(update=overrides))

    return _factory
