"""Simulation orchestrator.

Turns a request (aperture, camera, RGBA source, exposure, options) into a
final RGBA image: per wavelength it plans a grid, rasterizes the mask,
propagates or bypasses diffraction, normalizes the PSF and resamples it to
image pixels; then it convolves, applies radiometry and encodes. Failures
never escape `run`; they come back as an unsuccessful response.
"""

from __future__ import annotations

import math
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Optional

import numpy as np

from obscura.core.config import (
    ApertureDescriptor,
    CameraDescriptor,
    SimulationConfig,
    SimulationOptions,
)
from obscura.core.errors import PhysicsError, SimulationCancelled
from obscura.core.logging import get_logger
from obscura.core.units import nm_to_mm

from ..components import rasterize
from ..imaging.convolution import select_strategy
from ..imaging.radiometry import post_process, to_linear_rgba
from ..imaging.resample import downsample_to_width, resize_to
from ..prop.backends import get_backend
from ..prop.plan import SimulationGrid, plan_grid
from ..prop.solvers import get_propagator
from ..recorders.psf import PSF, geometric_psf, psf_to_image_kernel, record_psf

logger = get_logger(__name__)

RGB_WAVELENGTHS_NM = (640.0, 540.0, 460.0)
CANCELLED = "cancelled"


class CancellationToken:
    """Flag a superseded request; the pipeline polls it between stages."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise SimulationCancelled(CANCELLED)


@dataclass
class SimulationRequest:
    """Everything one simulation needs. Arrays are read, never modified."""

    aperture: ApertureDescriptor
    camera: CameraDescriptor
    source: np.ndarray
    exposure: float = 1.0
    mask_bitmap: Optional[np.ndarray] = None
    options: SimulationOptions = field(default_factory=SimulationOptions)

    @classmethod
    def from_config(
        cls,
        config: SimulationConfig,
        source: np.ndarray,
        mask_bitmap: Optional[np.ndarray] = None,
        exposure_gain: float = 1.0,
    ) -> SimulationRequest:
        return cls(
            aperture=config.aperture,
            camera=config.camera,
            source=source,
            exposure=config.exposure * exposure_gain,
            mask_bitmap=mask_bitmap,
            options=config.options,
        )


@dataclass
class SimulationResponse:
    """Exactly one per request: an image on success, an error message otherwise."""

    success: bool
    image: Optional[np.ndarray] = None
    error: Optional[str] = None


@dataclass
class ChannelPSF:
    """PSF products for one wavelength."""

    wavelength_nm: float
    grid: SimulationGrid
    mask: np.ndarray
    psf: PSF
    kernel: np.ndarray


def wavelengths_for(camera: CameraDescriptor, options: SimulationOptions) -> tuple[float, ...]:
    if options.polychromatic:
        return RGB_WAVELENGTHS_NM
    return (camera.wavelength_nm,)


def _check_token(token: Optional[CancellationToken]) -> None:
    if token is not None:
        token.raise_if_cancelled()


class SimulationPipeline:
    """Stateless per request apart from cached FFT backends and propagators.

    Backends are kept per (name, device) so the torch accelerator context
    survives between requests of the same output resolution. Each backend
    gets one propagator, whose transfer-function kernels are reused by
    requests with unchanged optics.
    """

    def __init__(self) -> None:
        self._backends: dict[tuple[str, str], Any] = {}
        self._propagators: dict[tuple[str, str], Any] = {}
        self._backend_lock = threading.Lock()

    def backend_for(self, options: SimulationOptions):  # type: ignore[no-untyped-def]
        key = (str(options.backend.value), options.device)
        with self._backend_lock:
            backend = self._backends.get(key)
            if backend is None:
                backend = get_backend(options.backend, options.device)
                self._backends[key] = backend
        return backend

    def propagator_for(self, options: SimulationOptions):  # type: ignore[no-untyped-def]
        key = (str(options.backend.value), options.device)
        backend = self.backend_for(options)
        with self._backend_lock:
            propagator = self._propagators.get(key)
            if propagator is None:
                propagator = get_propagator(backend)
                self._propagators[key] = propagator
        return propagator

    def build_psf(
        self,
        aperture: ApertureDescriptor,
        camera: CameraDescriptor,
        wavelength_nm: float,
        px_per_mm: float,
        options: SimulationOptions | None = None,
        mask_bitmap: Optional[np.ndarray] = None,
    ) -> ChannelPSF:
        """Grid, mask, normalized PSF and image kernel for one wavelength.

        Args:
            aperture: Aperture descriptor
            camera: Camera descriptor (focal length is the propagation distance)
            wavelength_nm: Wavelength in nanometers
            px_per_mm: Pixel density of the image the kernel will be applied to
            options: Run options (diffraction switch, backend)
            mask_bitmap: 8-bit image for custom apertures

        Returns:
            ChannelPSF for this wavelength
        """
        options = options or SimulationOptions()
        focal = camera.focal_length_mm
        grid = plan_grid(aperture, wavelength_nm, focal, px_per_mm)
        mask = rasterize(aperture, grid, wavelength_nm, focal, mask_bitmap)

        if options.render_diffraction:
            propagator = self.propagator_for(options)
            sensor_field = propagator.propagate(
                mask.astype(np.complex128), nm_to_mm(wavelength_nm), focal, grid.window_mm
            )
            psf = record_psf(sensor_field)
        else:
            psf = geometric_psf(mask)

        if not np.all(np.isfinite(psf.data)):
            raise PhysicsError(f"PSF at {wavelength_nm} nm contains non-finite values")

        kernel = psf_to_image_kernel(psf, grid, px_per_mm)
        logger.debug(
            "PSF built",
            {
                "wavelength_nm": wavelength_nm,
                "grid_n": grid.n,
                "window_mm": grid.window_mm,
                "energy": psf.energy,
                "kernel_size": kernel.shape[0],
            },
        )
        return ChannelPSF(wavelength_nm, grid, mask, psf, kernel)

    def build_channels(
        self,
        request: SimulationRequest,
        px_per_mm: float,
        token: Optional[CancellationToken] = None,
    ) -> list[ChannelPSF]:
        """One ChannelPSF per wavelength, optionally computed concurrently."""
        wavelengths = wavelengths_for(request.camera, request.options)

        def build(wavelength_nm: float) -> ChannelPSF:
            _check_token(token)
            return self.build_psf(
                request.aperture,
                request.camera,
                wavelength_nm,
                px_per_mm,
                request.options,
                request.mask_bitmap,
            )

        if request.options.parallel_channels and len(wavelengths) > 1:
            with ThreadPoolExecutor(max_workers=len(wavelengths)) as pool:
                return list(pool.map(build, wavelengths))
        return [build(wl) for wl in wavelengths]

    def prepare_source(self, request: SimulationRequest) -> np.ndarray:
        """Linear float RGBA at processing resolution."""
        source = np.asarray(request.source)
        if source.ndim != 3 or source.shape[2] != 4 or source.dtype != np.uint8:
            raise PhysicsError(
                f"Source must be uint8 RGBA (H, W, 4), got {source.dtype} {source.shape}"
            )
        if source.shape[0] == 0 or source.shape[1] == 0:
            raise PhysicsError("Source image is empty")
        linear = to_linear_rgba(source)
        return downsample_to_width(linear, request.options.processing_width)

    def render(
        self, request: SimulationRequest, token: Optional[CancellationToken] = None
    ) -> np.ndarray:
        """Run every stage and return the final uint8 RGBA image.

        Raises:
            ObscuraError: On invalid input, sampling or physics failures
            SimulationCancelled: When `token` is cancelled mid-run
        """
        options = request.options
        camera = request.camera
        _check_token(token)

        working = self.prepare_source(request)
        height, width = working.shape[:2]
        px_per_mm = width / camera.sensor_width_mm
        _check_token(token)

        channels = self.build_channels(request, px_per_mm, token)
        _check_token(token)

        kernels = [c.kernel for c in channels]
        convolver = select_strategy(
            kernels, options.convolution, self.backend_for(options), options.hdr_ceiling
        )
        if not math.isfinite(request.exposure):
            raise PhysicsError(f"Exposure is not finite ({request.exposure})")
        convolved = convolver.convolve(working, kernels, request.exposure)
        if not np.all(np.isfinite(convolved)):
            raise PhysicsError("Convolved image contains non-finite values")
        _check_token(token)

        rng = np.random.default_rng(options.noise_seed)
        final = post_process(
            convolved,
            camera.focal_length_mm,
            camera.sensor_width_mm,
            camera.iso,
            vignetting=options.vignetting,
            base_iso=options.base_iso,
            rng=rng,
        )
        _check_token(token)

        src_h, src_w = request.source.shape[:2]
        if options.restore_size and (src_h, src_w) != (height, width):
            restored = resize_to(final.astype(np.float64), src_h, src_w)
            final = np.clip(np.rint(restored), 0, 255).astype(np.uint8)

        logger.info(
            "Simulation complete",
            {
                "aperture": str(request.aperture.kind),
                "processing_size": [height, width],
                "output_size": list(final.shape[:2]),
                "convolver": convolver.name,
                "grids": [c.grid.n for c in channels],
            },
        )
        return final

    def run(
        self, request: SimulationRequest, token: Optional[CancellationToken] = None
    ) -> SimulationResponse:
        """Render a request; never raises."""
        start = time.perf_counter()
        try:
            image = self.render(request, token)
        except SimulationCancelled:
            logger.info("Simulation cancelled")
            return SimulationResponse(success=False, error=CANCELLED)
        except Exception as e:  # noqa: BLE001
            logger.error(f"Simulation failed: {e}", {"error_type": type(e).__name__})
            return SimulationResponse(success=False, error=f"{type(e).__name__}: {e}")
        logger.debug("Request timing", {"elapsed_s": time.perf_counter() - start})
        return SimulationResponse(success=True, image=image)

    def close(self) -> None:
        with self._backend_lock:
            for propagator in self._propagators.values():
                propagator.clear()
            self._propagators.clear()
            for backend in self._backends.values():
                backend.close()
            self._backends.clear()


__all__ = [
    "RGB_WAVELENGTHS_NM",
    "CancellationToken",
    "SimulationRequest",
    "SimulationResponse",
    "ChannelPSF",
    "wavelengths_for",
    "SimulationPipeline",
]
