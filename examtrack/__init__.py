"""ExamTrack backend package."""
