import pytest
from matplotlib.figure import Figure

from hespex import create_dataset, ignore_channels, import_multichannel, import_other, rebin, rebin_ancillary
from hespex.data.simulated_data import simulate_ogip_products
from hespex.plotting import plot_raw, plot_rebinned


@pytest.fixture
def xrt(tmp_path):
    ds = create_dataset("XRTTest", "Swift-XRT")
    import_multichannel(ds, **simulate_ogip_products(tmp_path, "Swift-XRT", size=32))
    return ds


def test_plot_raw(xrt):
    fig = plot_raw(xrt)

    assert isinstance(fig, Figure)
    ax = fig.axes[0]
    assert ax.get_title() == "XRTTest"
    assert ax.get_xlabel() == "Channels"
    assert len(ax.containers) == 1


def test_plot_raw_not_imported(caplog):
    fig = plot_raw(create_dataset("Empty", "Swift-XRT"), title="Nothing yet")

    assert isinstance(fig, Figure)
    assert fig.axes[0].get_title() == "Nothing yet"
    assert len(fig.axes[0].containers) == 0
    assert "not imported" in caplog.text


def test_plot_rebinned(xrt, caplog):
    fig = plot_rebinned(xrt)
    assert len(fig.axes[0].containers) == 0
    assert "not fully rebinned" in caplog.text

    ignore_channels(xrt, [0])
    rebin(xrt)
    rebin_ancillary(xrt)
    fig = plot_rebinned(xrt, xlabel="Channel")
    assert isinstance(fig, Figure)
    assert fig.axes[0].get_xlabel() == "Channel"
    assert len(fig.axes[0].containers) == 1


def test_plot_other():
    ds = create_dataset("UVOT", "Other")
    import_other(ds, [1., 2.], [0.1, 0.2], [0.01, 0.02])

    assert len(plot_raw(ds).axes[0].containers) == 1
    assert len(plot_rebinned(ds).axes[0].containers) == 1
