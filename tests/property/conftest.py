"""Hypothesis strategies for property-based testing."""

from hypothesis import strategies as st


@st.composite
def generate_timeline(draw):
    """Generate a (total_duration, segment_seconds) pair for segmentation."""
    segment_seconds = draw(st.integers(min_value=1, max_value=600))
    total_duration = draw(st.floats(min_value=0.01, max_value=4 * 3600.0))
    return round(total_duration, 2) or 0.01, segment_seconds


@st.composite
def generate_durations(draw, max_drift: float = 0.05):
    """Generate (audio, video) durations whose ratio stays within `max_drift`."""
    video = draw(st.floats(min_value=1.0, max_value=6 * 3600.0))
    ratio = draw(st.floats(min_value=1.0 - max_drift, max_value=1.0 + max_drift))
    return video * ratio, video


@st.composite
def generate_ffmpeg_time(draw):
    """Generate an ffmpeg stderr progress line and the seconds it encodes."""
    hours = draw(st.integers(min_value=0, max_value=9))
    minutes = draw(st.integers(min_value=0, max_value=59))
    centis = draw(st.integers(min_value=0, max_value=5999))
    seconds = centis / 100
    line = f"frame=  120 fps= 30 q=28.0 size=N/A time={hours:02d}:{minutes:02d}:{seconds:05.2f}"
    return line, hours * 3600 + minutes * 60 + seconds


@st.composite
def generate_frame_rate(draw):
    """Generate a raw ffprobe r_frame_rate string and its numeric value."""
    num = draw(st.integers(min_value=1, max_value=120000))
    den = draw(st.integers(min_value=1, max_value=1001))
    return f"{num}/{den}", num / den
