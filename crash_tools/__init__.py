"""Vehicle accident detection tools for motion-sensor telemetry."""
