"""
Pydantic models for image tool configuration.

Defines configuration schemas with validation, defaults, and documentation
for the Sauvola thresholder, mask cleanup, inpainting and background stages.
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..processors.integral import ACCUMULATOR_TYPES, window_size_limit
from ..processors.inpaint import InpaintInitMode
from ..processors.sauvola import OutputType, VARIABLE_OUTPUTS
from ..processors.background import BackgroundOutput


class LogLevel(str, Enum):
    """Supported logging levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class SauvolaConfig(BaseModel):
    """Configuration for Sauvola thresholding."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True, use_enum_values=True)

    output_type: OutputType = Field(
        default=OutputType.BINARY,
        description="Output mode: binary, threshold, variable, pixelinfo or variable-multiw"
    )
    window_size: int = Field(
        default=60,
        ge=1,
        description="Side length of the analysis window in pixels"
    )
    k: float = Field(
        default=0.4,
        ge=0.0,
        description="Sauvola k parameter"
    )
    r_scale: float = Field(
        default=1.0,
        gt=0.0,
        description="Scale of R (1.0 for maximum standard deviation possible)"
    )
    t_scale: float = Field(
        default=1.0,
        gt=0.0,
        allow_inf_nan=False,
        description="Threshold scale"
    )
    bias: float = Field(
        default=0.0,
        allow_inf_nan=False,
        description="Threshold bias as a fraction of the intensity range"
    )
    multi_window_sizes: Optional[List[int]] = Field(
        default=None,
        description="1-3 window sizes for the variable-multiw output (R, G, B)"
    )
    prescale: float = Field(
        default=1.0,
        gt=0.0,
        allow_inf_nan=False,
        description="Lanczos4 resize factor applied before thresholding"
    )
    accumulator: str = Field(
        default="uint64",
        description="Integral image accumulator type"
    )

    @field_validator('accumulator')
    @classmethod
    def validate_accumulator(cls, v):
        """Only unsigned accumulator types with a known window limit are allowed."""
        if v not in ACCUMULATOR_TYPES:
            raise ValueError(f"accumulator must be one of {sorted(ACCUMULATOR_TYPES)}")
        return v

    @model_validator(mode='after')
    def validate_window_range(self):
        """Window sizes must fit the accumulator; variable outputs need r_scale >= 1."""
        limit = window_size_limit(self.accumulator)
        if self.multi_window_sizes is not None and not 1 <= len(self.multi_window_sizes) <= 3:
            raise ValueError("multi_window_sizes must hold 1 to 3 window sizes")
        sizes = [self.window_size] + list(self.multi_window_sizes or [])
        for size in sizes:
            if size < 1 or size > limit:
                raise ValueError(f"window size {size} outside [1, {limit}]")
        output_type = OutputType(self.output_type)
        if output_type in VARIABLE_OUTPUTS and self.r_scale < 1:
            raise ValueError("r_scale must not be less than 1 if variable output is enabled")
        if output_type == OutputType.VARIABLE_MULTIW and not self.multi_window_sizes:
            raise ValueError("variable-multiw output requires multi_window_sizes")
        return self


class MaskDenoiseConfig(BaseModel):
    """Distances used to clean the foreground mask before inpainting."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    distance1: float = Field(
        default=1.0,
        ge=0.0,
        description="Mask denoise distance (mask shrinking)"
    )
    distance2: float = Field(
        default=5.0,
        ge=0.0,
        description="Mask denoise distance (mask growing)"
    )


class InpaintConfig(BaseModel):
    """Configuration for fast diffusion inpainting."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True, use_enum_values=True)

    init_mode: InpaintInitMode = Field(
        default=InpaintInitMode.NEAREST,
        description="Initial fill: mean of unmasked pixels or nearest by L1"
    )
    iterations: int = Field(
        default=16,
        ge=0,
        description="Number of relaxation iterations"
    )


class BackgroundConfig(BaseModel):
    """Configuration for background normalization."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True, use_enum_values=True)

    blur: int = Field(
        default=9,
        ge=1,
        description="Gaussian blur size of the estimated background (odd, 1 disables)"
    )
    alpha: float = Field(
        default=0.9,
        ge=0.0,
        le=1.0,
        description="Normal intensity of the background"
    )
    output: BackgroundOutput = Field(
        default=BackgroundOutput.NORMALIZED,
        description="Write the normalized image or the background estimate"
    )
    brightness: bool = Field(
        default=False,
        description="Stretch the output to the full intensity range"
    )
    input_as_grayscale: bool = Field(
        default=False,
        description="Convert color input to grayscale first"
    )

    @field_validator('blur')
    @classmethod
    def validate_odd_blur(cls, v):
        """Ensure blur size is odd."""
        if v % 2 == 0:
            raise ValueError("background blur size must be an odd integer")
        return v


class LoggingConfig(BaseModel):
    """Configuration for logging setup."""

    model_config = ConfigDict(extra="forbid", use_enum_values=True)

    level: LogLevel = Field(
        default=LogLevel.WARNING,
        description="Base logging level"
    )
    log_file: Optional[str] = Field(
        default=None,
        description="Optional log file path"
    )
    use_rich: bool = Field(
        default=True,
        description="Whether to use rich console output"
    )
    format_style: str = Field(
        default="simple",
        pattern="^(simple|detailed|minimal)$",
        description="Logging format style"
    )


class Config(BaseModel):
    """Main configuration model for the image tools."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True, use_enum_values=True)

    sauvola: SauvolaConfig = Field(
        default_factory=SauvolaConfig,
        description="Sauvola thresholding configuration"
    )
    mask_denoise: MaskDenoiseConfig = Field(
        default_factory=MaskDenoiseConfig,
        description="Mask cleanup configuration"
    )
    inpaint: InpaintConfig = Field(
        default_factory=InpaintConfig,
        description="Inpainting configuration"
    )
    background: BackgroundConfig = Field(
        default_factory=BackgroundConfig,
        description="Background normalization configuration"
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig,
        description="Logging configuration"
    )
    save_debug_images: bool = Field(
        default=False,
        description="Keep intermediate images on the processors"
    )

    # Meta configuration
    version: str = Field(
        default="1.0.0",
        description="Configuration version"
    )
    description: Optional[str] = Field(
        default=None,
        description="Configuration description"
    )
