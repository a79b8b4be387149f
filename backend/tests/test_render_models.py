import pytest

from models.render_models import (
    FORMAT_OPTIONS,
    IMPORT_EXTENSIONS,
    RESOLUTION_DIMENSIONS,
    RESOLUTION_OPTIONS,
    AudioCodec,
    AudioSettings,
    ExportPreset,
    VideoCodec,
    VideoSettings,
)
from models.timeline_models import ExportFormat, ResolutionTier


class TestVideoSettings:
    def test_default_settings(self):
        settings = VideoSettings()

        assert settings.codec == VideoCodec.H264
        assert settings.crf == 23
        assert settings.preset == "medium"
        assert settings.bitrate is None
        assert settings.pixel_format == "yuv420p"
        assert settings.extra_args == []

    def test_crf_validation(self):
        assert VideoSettings(crf=0).crf == 0
        assert VideoSettings(crf=63).crf == 63

        with pytest.raises(ValueError):
            VideoSettings(crf=-1)

        with pytest.raises(ValueError):
            VideoSettings(crf=64)


class TestAudioSettings:
    def test_default_settings(self):
        settings = AudioSettings()

        assert settings.codec == AudioCodec.AAC
        assert settings.bitrate == "192k"
        assert settings.sample_rate == 48000
        assert settings.channels == 2


class TestExportPresets:
    def test_mp4_preset(self):
        preset = ExportPreset.mp4_export()

        assert preset.container == "mp4"
        assert preset.video.codec == VideoCodec.H264
        assert preset.video.crf == 23
        assert preset.video.preset == "medium"
        assert preset.audio.codec == AudioCodec.AAC
        assert "+faststart" in preset.video.extra_args

    def test_webm_preset(self):
        preset = ExportPreset.webm_export()

        assert preset.container == "webm"
        assert preset.video.codec == VideoCodec.VP9
        assert preset.video.crf == 31
        assert preset.video.preset is None
        assert preset.video.bitrate == "0"
        assert preset.audio.codec == AudioCodec.OPUS

    def test_mov_preset(self):
        preset = ExportPreset.mov_export()

        assert preset.container == "mov"
        assert preset.video.codec == VideoCodec.H264
        assert preset.video.crf == 18

    @pytest.mark.parametrize(
        "export_format,container",
        [
            (ExportFormat.MP4, "mp4"),
            (ExportFormat.WEBM, "webm"),
            (ExportFormat.MOV, "mov"),
        ],
    )
    def test_for_format(self, export_format, container):
        assert ExportPreset.for_format(export_format).container == container

    def test_unknown_format_uses_mp4_codecs(self):
        preset = ExportPreset.for_format(ExportFormat.parse("avi"))

        assert preset.container == "mp4"
        assert preset.video.codec == VideoCodec.H264


class TestPresetArgs:
    def test_mp4_args_order(self):
        args = ExportPreset.mp4_export().to_args()

        assert args == [
            "-c:v",
            "libx264",
            "-preset",
            "medium",
            "-crf",
            "23",
            "-pix_fmt",
            "yuv420p",
            "-movflags",
            "+faststart",
            "-c:a",
            "aac",
            "-b:a",
            "192k",
            "-ar",
            "48000",
            "-ac",
            "2",
        ]

    def test_webm_constant_quality(self):
        args = ExportPreset.webm_export().to_args()

        assert "-preset" not in args
        assert args[args.index("-crf") + 1] == "31"
        assert args[args.index("-b:v") + 1] == "0"
        assert args[args.index("-c:a") + 1] == "libopus"

    def test_without_audio(self):
        args = ExportPreset.mp4_export().to_args(include_audio=False)

        assert "-c:a" not in args
        assert args[-1] == "-an"


class TestExportOptions:
    def test_resolution_options_cover_every_tier(self):
        assert [option.value for option in RESOLUTION_OPTIONS] == list(ResolutionTier)

    def test_resolution_options_match_table(self):
        for option in RESOLUTION_OPTIONS:
            dimensions = RESOLUTION_DIMENSIONS[option.value]
            if dimensions is None:
                assert option.width is None and option.height is None
            else:
                assert (option.width, option.height) == dimensions

    def test_format_options(self):
        assert [option.value for option in FORMAT_OPTIONS] == list(ExportFormat)
        assert FORMAT_OPTIONS[0].label == "MP4"

    def test_import_extensions(self):
        assert IMPORT_EXTENSIONS == ["mp4", "mov", "webm", "mkv", "avi"]
