"""Tests for fluxkontext.core.dispatch — processing path selection."""

from __future__ import annotations

import pytest

from fluxkontext.core.dispatch import (
    ProcessingPath,
    model_type_for,
    require_prompt,
    select_path,
)
from fluxkontext.core.errors import ValidationError


class TestSelectPath:
    @pytest.mark.parametrize(
        "image_url, model_type, expected",
        [
            ("https://x/y.jpg", None, ProcessingPath.EDIT),
            ("https://x/y.jpg", "kontext", ProcessingPath.EDIT),
            ("https://x/y.jpg", "editing", ProcessingPath.EDIT),
            ("https://x/y.jpg", "generation", ProcessingPath.GENERATE),
            (None, None, ProcessingPath.GENERATE),
            ("", None, ProcessingPath.GENERATE),
            (None, "kontext", ProcessingPath.GENERATE),
            (None, "generation", ProcessingPath.GENERATE),
        ],
    )
    def test_selection(self, image_url, model_type, expected):
        assert select_path(image_url, model_type) is expected

    def test_model_type_for_path(self):
        assert model_type_for(ProcessingPath.EDIT) == "kontext"
        assert model_type_for(ProcessingPath.GENERATE) == "dev"


class TestRequirePrompt:
    def test_valid_prompt_returned_unchanged(self):
        assert require_prompt("  remove background ") == "  remove background "

    @pytest.mark.parametrize("prompt", [None, "", "   "])
    def test_missing_prompt_raises(self, prompt):
        with pytest.raises(ValidationError) as exc_info:
            require_prompt(prompt)
        assert exc_info.value.message == "Missing required parameter: prompt"
        assert exc_info.value.status_code == 400
