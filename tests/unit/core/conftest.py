"""Shared fixtures for core unit tests"""

import pytest

from mdserve.core.options import ExtensionConfig
from mdserve.core.parse import make_parser


SAMPLE_MD = """\
# Title

Visible

## Hidden

Secret

## Also Hidden

More"""

SAMPLE_FM_MD = """\
---
title: Test Doc
tags: [a, b]
---

# Title

Body content.
"""


@pytest.fixture(name="parser")
def parser_fixture():
    return make_parser(ExtensionConfig())


@pytest.fixture(name="render_tokens")
def render_tokens_fixture(parser):
    """Render a token stream with the default parser's renderer."""
    def _render(tokens, env=None):
        return parser.renderer.render(tokens, parser.options, env or {})
    return _render


@pytest.fixture(name="sample_md")
def sample_md_fixture():
    return SAMPLE_MD


@pytest.fixture(name="sample_fm_md")
def sample_fm_md_fixture():
    return SAMPLE_FM_MD
