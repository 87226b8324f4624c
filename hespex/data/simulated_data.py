"""
Module to store functions used to generate simulated data products.

The OGIP writers produce the minimal RMF, ARF and PHA files that `hespex.io` reads,
in the extension layouts of the supported instruments: Swift-XRT (and SVOM-MXT)
responses store EBOUNDS before MATRIX, Swift-BAT responses store MATRIX first.
"""

import os

import numpy as np
from astropy.io import fits

from hespex.instruments import Instrument

__all__ = ["simulate_square_response_matrix", "simulate_counts", "write_rmf", "write_arf", "write_pha",
           "simulate_ogip_products"]

_ENERGY_RANGES = {Instrument.XRT: (0.3, 10.), Instrument.MXT: (0.2, 10.), Instrument.BAT: (14., 195.)}


def simulate_square_response_matrix(size, random_seed=10):
    """Generate a square matrix with off-diagonal terms.

    Returns a product to mimic an instrument redistribution matrix: mostly diagonal,
    with a little of each row spread into lower channels. Every row sums to 1.

    Parameters
    ----------
    size : `int`
        The length of each side of the square response matrix.

    random_seed : `int`, optional
        The seed input for the random number generator. This will accept any value input accepted
        by `numpy.random.default_rng`.

    Returns
    -------
    `numpy.ndarray`
        The simulated 2D square response matrix.
    """
    np_rand = np.random.default_rng(seed=random_seed)

    fake_rmf = np.identity(size)
    for c, r in enumerate(fake_rmf):
        # redistribute into the (at most) five channels below the diagonal
        lo = max(0, c - 5)
        r[lo:c] = np_rand.random(c - lo) * 0.05
        r /= np.sum(r)

    return fake_rmf


def simulate_counts(size, exposure=1000., normalisation=50., index=1.5, random_seed=10):
    """Draw Poisson counts for a falling power-law spectrum.

    Parameters
    ----------
    size : `int`
        Number of channels.

    exposure : `float`, optional
        Exposure time [s]; the expected counts scale with it.

    normalisation : `float`, optional
        Expected count rate [counts/s] in the first channel.

    index : `float`, optional
        Power-law index over channel number.

    random_seed : `int`, optional
        The seed input for the random number generator.

    Returns
    -------
    `numpy.ndarray`
        Integer counts per channel.
    """
    np_rand = np.random.default_rng(seed=random_seed)
    expected = normalisation * exposure * np.arange(1, size + 1, dtype=float)**(-index)
    return np_rand.poisson(expected)


def _rmf_columns(matrix, first_channel, compressed):
    if not compressed:
        return [fits.Column(name="MATRIX", format=f"{matrix.shape[1]}E", array=matrix)], {}

    n_grp, f_chan, n_chan, values = [], [], [], []
    for row in matrix:
        nonzero = np.flatnonzero(row)
        # one channel subset per row, spanning its first to last non-zero entry
        lo, hi = nonzero[0], nonzero[-1] + 1
        n_grp.append(1)
        f_chan.append(np.array([lo + first_channel], dtype=np.int32))
        n_chan.append(np.array([hi - lo], dtype=np.int32))
        values.append(row[lo:hi].astype(np.float32))
    columns = [fits.Column(name="N_GRP", format="J", array=np.array(n_grp, dtype=np.int32)),
               fits.Column(name="F_CHAN", format="PJ()", array=f_chan),
               fits.Column(name="N_CHAN", format="PJ()", array=n_chan),
               fits.Column(name="MATRIX", format="PE()", array=values)]
    return columns, {"F_CHAN": first_channel}


def write_rmf(path, energ_lo, energ_hi, matrix, e_min, e_max, first_channel=0, ebounds_first=True,
              compressed=False):
    """Write a redistribution matrix file.

    Parameters
    ----------
    path : `str` or `pathlib.Path`
        Output file, overwritten if it exists.

    energ_lo, energ_hi : `numpy.ndarray`
        Energy bin edges of the matrix rows [keV].

    matrix : `numpy.ndarray`
        Dense matrix with energy rows and channel columns.

    e_min, e_max : `numpy.ndarray`
        Energy bin edges of the channels [keV].

    first_channel : `int`, optional
        Number of the first channel (0 or 1).

    ebounds_first : `bool`, optional
        Write EBOUNDS as the first extension (Swift-XRT layout) instead of after MATRIX
        (Swift-BAT layout).

    compressed : `bool`, optional
        Store the rows with the N_GRP, F_CHAN and N_CHAN columns.

    Returns
    -------
    The path written.
    """
    matrix = np.asarray(matrix, dtype=float)
    channels = np.arange(first_channel, first_channel + matrix.shape[1])
    ebounds = fits.BinTableHDU.from_columns([fits.Column(name="CHANNEL", format="J", array=channels),
                                             fits.Column(name="E_MIN", format="E", array=e_min),
                                             fits.Column(name="E_MAX", format="E", array=e_max)],
                                            name="EBOUNDS")

    matrix_columns, tlmin = _rmf_columns(matrix, first_channel, compressed)
    response = fits.BinTableHDU.from_columns([fits.Column(name="ENERG_LO", format="E", array=energ_lo),
                                              fits.Column(name="ENERG_HI", format="E", array=energ_hi)]
                                             + matrix_columns, name="MATRIX")
    for name, value in tlmin.items():
        response.header[f"TLMIN{response.columns.names.index(name) + 1}"] = value

    extensions = [ebounds, response] if ebounds_first else [response, ebounds]
    fits.HDUList([fits.PrimaryHDU()] + extensions).writeto(path, overwrite=True)
    return path


def write_arf(path, energ_lo, energ_hi, specresp):
    """Write an ancillary response file with a SPECRESP extension [cm^2]. Returns the path."""
    arf = fits.BinTableHDU.from_columns([fits.Column(name="ENERG_LO", format="E", array=energ_lo),
                                         fits.Column(name="ENERG_HI", format="E", array=energ_hi),
                                         fits.Column(name="SPECRESP", format="E", array=specresp)],
                                        name="SPECRESP")
    fits.HDUList([fits.PrimaryHDU(), arf]).writeto(path, overwrite=True)
    return path


def write_pha(path, columns, exposure=None, backscal=None):
    """Write a spectrum file.

    Parameters
    ----------
    path : `str` or `pathlib.Path`
        Output file, overwritten if it exists.

    columns : `dict`
        Column name to 1d array, e.g. ``{"CHANNEL": ..., "COUNTS": ...}``. Integer
        arrays are written as 32 bit integers, everything else as floats.

    exposure, backscal : `float`, optional
        EXPOSURE and BACKSCAL header keywords, left out when None.

    Returns
    -------
    The path written.
    """
    fits_columns = []
    for name, array in columns.items():
        array = np.asarray(array)
        fmt = "J" if np.issubdtype(array.dtype, np.integer) else "E"
        fits_columns.append(fits.Column(name=name, format=fmt, array=array))
    spectrum = fits.BinTableHDU.from_columns(fits_columns, name="SPECTRUM")
    if exposure is not None:
        spectrum.header["EXPOSURE"] = exposure
    if backscal is not None:
        spectrum.header["BACKSCAL"] = backscal
    fits.HDUList([fits.PrimaryHDU(), spectrum]).writeto(path, overwrite=True)
    return path


def simulate_ogip_products(directory, instrument="Swift-XRT", size=64, exposure=1000., background=True,
                           compressed=False, random_seed=10):
    """Write a full set of simulated products for one instrument.

    Parameters
    ----------
    directory : `str` or `pathlib.Path`
        Existing directory to write the files to.

    instrument : `str` or `~hespex.instruments.Instrument`, optional
        "Swift-XRT", "SVOM-MXT" or "Swift-BAT". Swift-BAT products have no ARF and no
        background, and the spectrum is a rate with statistical and systematic errors.

    size : `int`, optional
        Number of channels (and of response energy bins).

    exposure : `float`, optional
        Source exposure [s]. The background has twice the exposure and four times
        the extraction area.

    background : `bool`, optional
        Write a background spectrum (not for Swift-BAT).

    compressed : `bool`, optional
        Write the RMF with compressed rows.

    random_seed : `int`, optional
        The seed input for the random number generator.

    Returns
    -------
    `dict`
        The paths written under the keys "rmf_file", "arf_file", "src_file" and
        "bkg_file" (None where no file is written), ready to pass to
        `~hespex.pipeline.import_multichannel`.
    """
    instrument = Instrument.from_name(instrument)
    if not instrument.is_multichannel:
        raise ValueError("Simulated OGIP products only exist for multi-channel instruments.")

    edges = np.linspace(*_ENERGY_RANGES[instrument], size + 1)
    lo, hi = edges[:-1], edges[1:]
    files = dict.fromkeys(("rmf_file", "arf_file", "src_file", "bkg_file"))
    prefix = instrument.name.lower()

    matrix = simulate_square_response_matrix(size, random_seed=random_seed)
    files["rmf_file"] = write_rmf(os.path.join(directory, f"{prefix}.rmf"), lo, hi, matrix, lo, hi,
                                  ebounds_first=instrument is not Instrument.BAT, compressed=compressed)

    counts = simulate_counts(size, exposure=exposure, random_seed=random_seed)
    channel = np.arange(size, dtype=np.int32)
    if instrument is Instrument.BAT:
        rate = counts / exposure
        files["src_file"] = write_pha(os.path.join(directory, f"{prefix}.pha"),
                                      {"CHANNEL": channel, "RATE": rate, "STAT_ERR": np.sqrt(counts + 1) / exposure,
                                       "SYS_ERR": 0.01 * rate},
                                      exposure=exposure, backscal=1.)
        return files

    area = np.linspace(400., 50., size)
    files["arf_file"] = write_arf(os.path.join(directory, f"{prefix}.arf"), lo, hi, area)
    files["src_file"] = write_pha(os.path.join(directory, f"{prefix}source.pi"),
                                  {"CHANNEL": channel, "COUNTS": counts.astype(np.int32)},
                                  exposure=exposure, backscal=1.)
    if background:
        bkg = np.random.default_rng(seed=random_seed + 1).poisson(2., size)
        files["bkg_file"] = write_pha(os.path.join(directory, f"{prefix}back.pi"),
                                      {"CHANNEL": channel, "COUNTS": bkg.astype(np.int32)},
                                      exposure=2 * exposure, backscal=4.)
    return files
