import time

import pytest

from vox.core.common.enums import ProcessingPhase
from vox.features.progress.domain.models import ProcessingStats, TranscriptionProgress
from vox.features.progress.service.reporter import ProgressReporter
from vox.features.progress.service.tracker import MonotonicProgress


class TestTranscriptionProgress:
    @pytest.mark.parametrize("raw, clamped", [(-0.5, 0.0), (0.42, 0.42), (1.7, 1.0)])
    def test_progress_is_clamped(self, raw, clamped):
        assert TranscriptionProgress(raw, "x", ProcessingPhase.TRANSCRIBING).current_progress == clamped

    def test_time_remaining_from_speed(self):
        progress = TranscriptionProgress(0.5, "half", ProcessingPhase.TRANSCRIBING, processing_speed=0.1)
        assert progress.estimated_time_remaining == pytest.approx(5.0)
        assert progress.formatted_time_remaining == "5s"
        assert progress.formatted_progress == "50.0%"

    @pytest.mark.parametrize("value, speed", [(0.0, 0.1), (1.0, 0.1), (0.5, None), (0.5, 0.0)])
    def test_time_remaining_unknown(self, value, speed):
        progress = TranscriptionProgress(value, "x", ProcessingPhase.TRANSCRIBING, processing_speed=speed)
        assert progress.estimated_time_remaining is None
        assert progress.formatted_time_remaining == "calculating..."

    def test_completion_and_elapsed(self):
        progress = TranscriptionProgress(1.0, "done", ProcessingPhase.COMPLETE, start_time=time.time() - 2)
        assert progress.is_complete
        assert progress.elapsed_time >= 2.0

    def test_long_remaining_times_are_human_readable(self):
        minutes = TranscriptionProgress(0.5, "x", ProcessingPhase.TRANSCRIBING, processing_speed=1 / 256)
        hours = TranscriptionProgress(0.5, "x", ProcessingPhase.TRANSCRIBING, processing_speed=1 / 8192)
        assert minutes.formatted_time_remaining == "2m 8s"
        assert hours.formatted_time_remaining == "1h 8m"


class TestProgressReporter:
    def test_word_count_collapses_whitespace(self):
        reporter = ProgressReporter(total_audio_duration=10.0)
        stats = reporter.update_progress(0, 2, "  one   two\tthree \n four five ", 0.8, 4.0)
        assert stats.words_processed == 5

    def test_stats_accumulate_across_segments(self):
        """
        1. Two segments over 10s of audio.
        2. Report both.
        3. Counts are cumulative, confidence is the running mean.
        """
        # 1. Arrange
        reporter = ProgressReporter(total_audio_duration=10.0)

        # 2. Act
        reporter.update_progress(0, 2, "Hello world.", 0.9, 4.0)
        stats = reporter.update_progress(1, 2, "Bye.", 0.7, 10.0)

        # 3. Assert
        assert stats.segments_processed == 2
        assert stats.words_processed == 3
        assert stats.average_confidence == pytest.approx(0.8)
        assert stats.audio_processed == 10.0
        assert stats.audio_remaining == 0.0
        assert stats.processing_rate >= 0.0

    def test_remaining_audio_never_negative(self):
        reporter = ProgressReporter(total_audio_duration=5.0)
        stats = reporter.update_progress(0, 1, "overrun", 1.0, 8.0)
        assert stats.audio_remaining == 0.0

    def test_status_previews_segment_text(self):
        reporter = ProgressReporter(10.0)
        reporter.update_progress(0, 3, "a" * 50, 1.0, 1.0)
        assert reporter.current_status == f'Processing: "{"a" * 30}..."'

        reporter.update_progress(1, 3, "   ", 1.0, 2.0)
        assert reporter.current_status == "Processing audio segment 2/3"

        reporter.update_progress(2, 3, "Short line.", 1.0, 3.0)
        assert reporter.current_status == 'Processing: "Short line."'

        reporter.update_progress(2, 3, "b" * 30, 1.0, 3.0)
        assert reporter.current_status == f'Processing: "{"b" * 30}"'

    def test_detailed_report(self):
        reporter = ProgressReporter(10.0)
        assert reporter.generate_detailed_progress_report().current_progress == 0.0

        reporter.update_progress(1, 4, "two", 1.0, 5.0)
        report = reporter.generate_detailed_progress_report()
        assert report.current_progress == pytest.approx(0.25)
        assert report.current_phase == ProcessingPhase.EXTRACTING

        reporter.update_progress(4, 4, "end", 1.0, 10.0)
        assert reporter.generate_detailed_progress_report().current_phase == ProcessingPhase.COMPLETE

    def test_stats_completion_estimate(self):
        assert ProcessingStats(processing_rate=0.0, audio_remaining=5.0).estimated_completion is None
        assert ProcessingStats(processing_rate=2.0, audio_remaining=5.0).estimated_completion == 2.5


class TestMonotonicProgress:
    def test_stage_values_map_into_their_slice(self):
        seen = []
        tracker = MonotonicProgress(seen.append)

        forward = tracker.stage(0.3, 0.9)
        forward(TranscriptionProgress(0.5, "half", ProcessingPhase.TRANSCRIBING))

        assert seen[-1].current_progress == pytest.approx(0.6)
        assert seen[-1].current_phase == ProcessingPhase.TRANSCRIBING

    def test_regressions_are_held_at_high_water(self):
        seen = []
        tracker = MonotonicProgress(seen.append)

        tracker.emit(0.5, "a", ProcessingPhase.EXTRACTING)
        tracker.emit(0.2, "b", ProcessingPhase.EXTRACTING)
        tracker.emit(0.7, "c", ProcessingPhase.TRANSCRIBING)

        assert [p.current_progress for p in seen] == [0.5, 0.5, 0.7]
        assert tracker.current == 0.7

    def test_failing_sink_does_not_break_the_run(self):
        def sink(progress):
            raise RuntimeError("ui went away")

        tracker = MonotonicProgress(sink)
        tracker.emit(0.4, "still going", ProcessingPhase.EXTRACTING)
        assert tracker.current == 0.4

    def test_no_sink_is_fine(self):
        tracker = MonotonicProgress()
        tracker.emit(1.5, "over", ProcessingPhase.COMPLETE)
        assert tracker.current == 1.0
