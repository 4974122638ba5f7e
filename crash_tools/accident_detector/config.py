from dataclasses import dataclass

WINDOW_POLICIES = ("score", "trim")


@dataclass
class DetectorConfig:
    # Indicator thresholds
    high_impact_g: float = 5.0
    sudden_decel_kmh: float = 30.0
    high_rotation_rad_s: float = 3.0
    high_jerk: float = 50.0                 # g/s
    min_duration_s: float = 0.5
    max_duration_s: float = 10.0
    significant_speed_change_kmh: float = 10.0
    high_accel_variance: float = 2.0
    min_positive_indicators: int = 3

    # "score": duration window only feeds the validDuration indicator
    # "trim": keep only the trailing max_duration_s of samples before extraction
    duration_window_policy: str = "score"

    # Confidence score
    indicator_weight: float = 60.0
    very_high_impact_g: float = 8.0
    very_high_impact_bonus: float = 15.0
    very_sudden_decel_kmh: float = 50.0
    very_sudden_decel_bonus: float = 15.0
    very_high_rotation_rad_s: float = 5.0
    very_high_rotation_bonus: float = 10.0
    weak_impact_g: float = 2.0
    weak_impact_penalty: float = 20.0
    weak_speed_drop_kmh: float = 5.0
    weak_speed_drop_penalty: float = 15.0
    min_sample_count: int = 3
    few_samples_penalty: float = 10.0

    # Severity decision list
    critical_confidence: float = 90.0
    critical_accel_g: float = 10.0
    severe_confidence: float = 80.0
    severe_accel_g: float = 7.0
    moderate_confidence: float = 60.0
    moderate_accel_g: float = 4.0

    # Impact analysis
    gravity_g: float = 1.0
    rollover_rotation_rad_s: float = 4.0
    rollover_accel_g: float = 3.0
    airbag_accel_g: float = 8.0
    phone_drop_accel_g: float = 6.0
    phone_drop_variance: float = 5.0

    # Output
    output_decimals: int = 2
    model_version: str = "1.0.0"

    def __post_init__(self):
        if self.duration_window_policy not in WINDOW_POLICIES:
            raise ValueError(
                f"duration_window_policy must be one of {WINDOW_POLICIES}, "
                f"got {self.duration_window_policy!r}"
            )
        if self.min_duration_s > self.max_duration_s:
            raise ValueError("min_duration_s must not exceed max_duration_s")


@dataclass
class RealtimeConfig:
    buffer_size: int = 10
    high_impact_g: float = 8.0
    sudden_stop_kmh: float = 20.0           # speed change between consecutive samples
    phone_drop_g: float = 10.0
    medium_trigger_min_samples: int = 5

    def __post_init__(self):
        if self.buffer_size < 2:
            raise ValueError("buffer_size must be at least 2")
