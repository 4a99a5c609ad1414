"""Property-based tests for segment tiling and resume state."""

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st
from pydantic import ValidationError as PydanticValidationError

from restora.models.errors import ValidationError
from restora.models.segment import ResumeState
from restora.segmentation.controller import count_segments, iter_segment_bounds
from tests.property.conftest import generate_timeline

pytestmark = pytest.mark.property


class TestTilingProperties:
    @given(timeline=generate_timeline())
    @settings(max_examples=100)
    def test_segments_cover_timeline(self, timeline):
        """Segments start at 0, are contiguous and end exactly at the duration."""
        total, seconds = timeline
        bounds = list(iter_segment_bounds(total, seconds))
        assert bounds[0][1] == 0.0
        for (_, start, length), (_, next_start, _) in zip(bounds, bounds[1:]):
            assert start + length == pytest.approx(next_start)
        _, last_start, last_length = bounds[-1]
        assert last_start + last_length == pytest.approx(total)

    @given(timeline=generate_timeline())
    @settings(max_examples=100)
    def test_lengths_bounded(self, timeline):
        """Every segment is non-empty and no longer than the segment length."""
        total, seconds = timeline
        for _, _, length in iter_segment_bounds(total, seconds):
            assert 0 < length <= seconds

    @given(timeline=generate_timeline())
    @settings(max_examples=100)
    def test_indices_sequential(self, timeline):
        total, seconds = timeline
        bounds = list(iter_segment_bounds(total, seconds))
        assert [index for index, _, _ in bounds] == list(range(len(bounds)))
        assert len(bounds) == count_segments(total, seconds)

    @given(seconds=st.floats(max_value=0.0, allow_nan=False))
    @settings(max_examples=30)
    def test_non_positive_length_rejected(self, seconds):
        with pytest.raises(ValidationError):
            list(iter_segment_bounds(10.0, seconds))


class TestResumeStateProperties:
    @given(n=st.integers(min_value=0, max_value=200))
    @settings(max_examples=50)
    def test_contiguous_prefix_accepted(self, n):
        state = ResumeState(start_offset=n * 60.0, next_index=n, completed=list(range(n)))
        assert state.next_index == len(state.completed)

    @given(
        completed=st.lists(st.integers(min_value=0, max_value=50), min_size=1, max_size=20).filter(
            lambda v: v != list(range(len(v)))
        )
    )
    @settings(max_examples=50)
    def test_gaps_rejected(self, completed):
        with pytest.raises(PydanticValidationError):
            ResumeState(next_index=len(completed), completed=completed)
