"""
Tests for the FFmpeg render plan builder.

These tests verify that timelines are correctly converted into
deterministic ffmpeg argument lists and filter graphs.
"""

import pytest

from models.timeline_models import (
    ExportFormat,
    ExportRequest,
    ResolutionTier,
    SourceMetadata,
    TimelineClip,
)
from utils.errors import (
    EmptyPrimaryTrackError,
    SourceNotFoundError,
    TrimOutOfRangeError,
)
from utils.ffmpeg_builder import (
    TimelineToFFmpeg,
    build_render_plan,
    estimate_file_size,
    resolve_dimensions,
)


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def sources() -> list[SourceMetadata]:
    """Probed metadata for the test media."""
    return [
        SourceMetadata(
            filename="interview.mp4",
            path="/media/interview.mp4",
            duration=30.0,
            resolution="1920x1080",
            codec="h264",
            has_audio=True,
        ),
        SourceMetadata(
            filename="broll.mov",
            path="/media/broll.mov",
            duration=12.0,
            resolution="1279x721",
            codec="prores",
        ),
        SourceMetadata(
            filename="logo.webm",
            path="/media/logo.webm",
            duration=4.0,
            resolution="640x360",
            codec="vp9",
        ),
    ]


@pytest.fixture
def simple_request() -> ExportRequest:
    """One main-track clip trimmed to [2, 7]."""
    return ExportRequest(
        clips=[
            TimelineClip(
                id="c1",
                source_path="/media/interview.mp4",
                track=0,
                start_time=0.0,
                trim_start=2.0,
                trim_end=7.0,
            )
        ],
        output_path="/exports/out.mp4",
        resolution="1080p",
        format="mp4",
    )


@pytest.fixture
def layered_request() -> ExportRequest:
    """Two main-track clips listed out of order, plus two overlay clips."""
    return ExportRequest(
        clips=[
            TimelineClip(
                id="second",
                source_path="/media/broll.mov",
                track=0,
                start_time=5.0,
                trim_start=0.0,
                trim_end=3.0,
            ),
            TimelineClip(
                id="first",
                source_path="/media/interview.mp4",
                track=0,
                start_time=0.0,
                trim_start=10.0,
                trim_end=15.0,
            ),
            TimelineClip(
                id="logo",
                source_path="/media/logo.webm",
                track=1,
                start_time=1.5,
                trim_start=0.0,
                trim_end=2.0,
            ),
            TimelineClip(
                id="logo-again",
                source_path="/media/logo.webm",
                track=1,
                start_time=6.0,
                trim_start=0.0,
                trim_end=2.0,
            ),
        ],
        output_path="/exports/layered.mp4",
        resolution="720p",
        format="mp4",
    )


# =============================================================================
# PLAN STRUCTURE
# =============================================================================


class TestTimelineToFFmpeg:
    """Tests for the TimelineToFFmpeg converter."""

    def test_single_clip_inputs(self, simple_request, sources):
        plan = TimelineToFFmpeg(simple_request, sources).build()

        assert len(plan.inputs) == 1
        assert plan.inputs[0].to_args() == [
            "-ss",
            "2.000",
            "-t",
            "5.000",
            "-i",
            "/media/interview.mp4",
        ]

    def test_expected_duration_is_trimmed_length(self, simple_request, sources):
        plan = build_render_plan(simple_request, sources)

        assert plan.expected_duration == pytest.approx(5.0)

    def test_primary_clips_ordered_by_start_time(self, layered_request, sources):
        plan = build_render_plan(layered_request, sources)

        assert [spec.clip_id for spec in plan.inputs] == ["first", "second", "logo"]
        assert plan.expected_duration == pytest.approx(8.0)

    def test_deterministic_output(self, layered_request, sources):
        first = build_render_plan(layered_request, sources).to_args()
        second = build_render_plan(layered_request, sources).to_args()

        assert first == second

    def test_empty_primary_track(self, sources):
        request = ExportRequest(
            clips=[
                TimelineClip(
                    id="pip",
                    source_path="/media/logo.webm",
                    track=1,
                    trim_start=0.0,
                    trim_end=1.0,
                )
            ],
            output_path="/exports/out.mp4",
        )

        with pytest.raises(EmptyPrimaryTrackError):
            build_render_plan(request, sources)

    def test_no_clips(self, sources):
        with pytest.raises(EmptyPrimaryTrackError):
            build_render_plan(ExportRequest(output_path="/exports/out.mp4"), sources)

    def test_source_not_found(self, simple_request):
        with pytest.raises(SourceNotFoundError) as exc_info:
            build_render_plan(simple_request, [])

        assert exc_info.value.clip_id == "c1"

    def test_overlay_source_must_exist(self, layered_request, sources):
        without_logo = [s for s in sources if s.path != "/media/logo.webm"]

        with pytest.raises(SourceNotFoundError) as exc_info:
            build_render_plan(layered_request, without_logo)

        assert exc_info.value.clip_id == "logo"

    def test_trim_past_source_duration(self, sources):
        request = ExportRequest(
            clips=[
                TimelineClip(
                    id="long",
                    source_path="/media/logo.webm",
                    trim_start=1.0,
                    trim_end=9.0,
                )
            ],
            output_path="/exports/out.mp4",
        )

        with pytest.raises(TrimOutOfRangeError) as exc_info:
            build_render_plan(request, sources)

        assert exc_info.value.clip_id == "long"

    def test_trim_within_tolerance(self, sources):
        request = ExportRequest(
            clips=[
                TimelineClip(
                    id="edge",
                    source_path="/media/logo.webm",
                    trim_start=0.0,
                    trim_end=4.0005,
                )
            ],
            output_path="/exports/out.mp4",
        )

        plan = build_render_plan(request, sources)
        assert plan.inputs[0].duration == pytest.approx(4.0005)


# =============================================================================
# FILTER GRAPH
# =============================================================================


class TestFilterGeneration:
    """Tests for filter_complex generation."""

    def test_primary_video_chain(self, simple_request, sources):
        plan = build_render_plan(simple_request, sources)

        assert (
            "[0:v]scale=1920:1080:force_original_aspect_ratio=decrease,"
            "pad=1920:1080:(ow-iw)/2:(oh-ih)/2:color=black,setsar=1,fps=30,"
            "format=yuv420p,setpts=PTS-STARTPTS[v0]"
        ) in plan.filter_complex

    def test_concat_with_audio(self, simple_request, sources):
        plan = build_render_plan(simple_request, sources)

        assert "[0:a]aresample=48000" in plan.filter_complex
        assert "atrim=duration=5.000" in plan.filter_complex
        assert "[v0][a0]concat=n=1:v=1:a=1[vcat][acat]" in plan.filter_complex
        assert plan.output_maps == ["[vcat]", "[acat]"]

    def test_silence_for_sources_without_audio(self, layered_request, sources):
        plan = build_render_plan(layered_request, sources)

        assert "anullsrc=r=48000:cl=stereo,atrim=duration=3.000" in plan.filter_complex
        assert "[v0][a0][v1][a1]concat=n=2:v=1:a=1[vcat][acat]" in plan.filter_complex

    def test_concat_without_audio(self, sources):
        request = ExportRequest(
            clips=[
                TimelineClip(
                    id="silent",
                    source_path="/media/broll.mov",
                    trim_start=0.0,
                    trim_end=2.0,
                )
            ],
            output_path="/exports/out.mp4",
        )

        plan = build_render_plan(request, sources)

        assert "[v0]concat=n=1:v=1:a=0[vcat]" in plan.filter_complex
        assert "[0:a]" not in plan.filter_complex
        assert plan.output_maps == ["[vcat]"]
        assert plan.output_options[-1] == "-an"

    def test_labels_defined_before_concat(self, layered_request, sources):
        plan = build_render_plan(layered_request, sources)
        filters = plan.filter_complex.split(";")

        concat_index = next(i for i, f in enumerate(filters) if "concat=" in f)
        assert all(f.endswith(("[v0]", "[v1]", "[a0]", "[a1]")) for f in filters[:concat_index])

    def test_first_overlay_only(self, layered_request, sources):
        plan = build_render_plan(layered_request, sources)

        assert plan.filter_complex.count("overlay=") == 1
        assert (
            "[2:v]scale=320:180:force_original_aspect_ratio=decrease,"
            "setsar=1,fps=30,setpts=PTS-STARTPTS+1.500/TB[pip]"
        ) in plan.filter_complex
        assert (
            "[vcat][pip]overlay=x=20:y=main_h-overlay_h-20:eof_action=pass[vout]"
        ) in plan.filter_complex
        assert plan.output_maps[0] == "[vout]"
        assert plan.overlay_clip_id == "logo"
        assert any("logo-again" in warning for warning in plan.warnings)

    def test_overlay_does_not_extend_duration(self, layered_request, sources):
        plan = build_render_plan(layered_request, sources)

        assert plan.expected_duration == pytest.approx(8.0)


# =============================================================================
# RESOLUTION
# =============================================================================


class TestResolution:
    @pytest.mark.parametrize(
        "tier,expected",
        [
            ("720p", (1280, 720)),
            ("1080p", (1920, 1080)),
            ("1440p", (2560, 1440)),
            ("4K", (3840, 2160)),
        ],
    )
    def test_fixed_tiers(self, simple_request, sources, tier, expected):
        request = simple_request.model_copy(update={"resolution": ResolutionTier.parse(tier)})

        plan = build_render_plan(request, sources)

        assert (plan.width, plan.height) == expected
        assert f"scale={expected[0]}:{expected[1]}:" in plan.filter_complex

    def test_source_tier_uses_first_clip(self, layered_request, sources):
        request = layered_request.model_copy(update={"resolution": ResolutionTier.SOURCE})

        plan = build_render_plan(request, sources)

        assert (plan.width, plan.height) == (1920, 1080)

    def test_source_tier_rounds_down_to_even(self, sources):
        assert resolve_dimensions(ResolutionTier.SOURCE, sources[1]) == (1278, 720)

    def test_source_tier_fallback(self):
        broken = SourceMetadata(
            filename="x.mp4", path="/media/x.mp4", duration=1.0, resolution="unknown", codec="h264"
        )

        assert resolve_dimensions(ResolutionTier.SOURCE, broken) == (1920, 1080)
        assert resolve_dimensions(ResolutionTier.SOURCE, None) == (1920, 1080)


# =============================================================================
# OUTPUT OPTIONS
# =============================================================================


class TestOutputOptions:
    def test_mp4_codecs(self, simple_request, sources):
        plan = build_render_plan(simple_request, sources)

        assert plan.output_options[:6] == ["-c:v", "libx264", "-preset", "medium", "-crf", "23"]
        assert "+faststart" in plan.output_options

    def test_webm_codecs_and_extension(self, simple_request, sources):
        request = simple_request.model_copy(update={"format": ExportFormat.WEBM})

        plan = build_render_plan(request, sources)

        assert plan.output_path == "/exports/out.webm"
        assert plan.output_options[plan.output_options.index("-c:v") + 1] == "libvpx-vp9"
        assert plan.output_options[plan.output_options.index("-c:a") + 1] == "libopus"

    def test_unknown_format_falls_back_to_mp4(self, sources):
        request = ExportRequest(
            clips=[
                TimelineClip(
                    id="c1",
                    source_path="/media/interview.mp4",
                    trim_start=0.0,
                    trim_end=1.0,
                )
            ],
            output_path="/exports/out.mkv",
            format="mkv",
        )

        plan = build_render_plan(request, sources)

        assert plan.output_path == "/exports/out.mp4"
        assert plan.output_options[1] == "libx264"

    def test_output_path_without_extension(self, simple_request, sources):
        request = simple_request.model_copy(update={"output_path": "/exports/final"})

        assert build_render_plan(request, sources).output_path == "/exports/final.mp4"


class TestCommandBuilding:
    def test_argument_order(self, simple_request, sources):
        args = build_render_plan(simple_request, sources).to_args()

        assert args[0] == "-y"
        assert args.index("-i") < args.index("-filter_complex") < args.index("-map")
        assert args[-1] == "/exports/out.mp4"

    def test_command_string(self, simple_request, sources):
        command = build_render_plan(simple_request, sources).command_string()

        assert command.startswith("ffmpeg -y -ss 2.000 -t 5.000 -i /media/interview.mp4")
        assert "-filter_complex '" in command


class TestSizeEstimate:
    def test_megabytes(self):
        # 8 Mbps * 60 s / 8 = 60 MB
        assert estimate_file_size(ResolutionTier.FULL_HD_1080, 60, ExportFormat.MP4) == "60 MB"

    def test_kilobytes(self):
        assert estimate_file_size(ResolutionTier.HD_720, 0.5, ExportFormat.MP4).endswith("KB")

    def test_gigabytes(self):
        label = estimate_file_size(ResolutionTier.UHD_4K, 3600, ExportFormat.MOV)
        assert label.endswith("GB")
