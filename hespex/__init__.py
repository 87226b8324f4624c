try:
    from .version import version as __version__
except ImportError:
    __version__ = "unknown"

from .aggregate import aggregate, evaluate_model, forward_fold
from .dataset import Dataset, create_dataset
from .instruments import Instrument, get_known_instruments
from .pipeline import build_response_matrix, ignore_channels, import_multichannel, import_other, rebin, rebin_ancillary
from .plotting import plot_raw, plot_rebinned

__all__ = ["Dataset", "Instrument", "create_dataset", "get_known_instruments", "import_multichannel", "import_other",
           "ignore_channels", "rebin", "rebin_ancillary", "build_response_matrix", "aggregate", "evaluate_model",
           "forward_fold", "plot_raw", "plot_rebinned"]
