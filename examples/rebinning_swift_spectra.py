"""
=================================
Rebinning Swift-XRT and BAT Data
=================================

This example takes a Swift-XRT and a Swift-BAT spectrum through the hespex stages,
from the OGIP files to the rebinned response matrices, and combines them with a
couple of optical points into one sequence for model evaluation.

Simulated products are used so the example runs without any downloads; replace the
file names with your own .rmf, .arf and .pi files.
"""

import tempfile

import matplotlib.pyplot as plt
import numpy as np

import hespex
from hespex.data.simulated_data import simulate_ogip_products

#####################################################
#
# Write the simulated products and create one dataset per instrument.

tmp = tempfile.mkdtemp()
xrt_files = simulate_ogip_products(tmp, "Swift-XRT", size=256, exposure=2000.)
bat_files = simulate_ogip_products(tmp, "Swift-BAT", size=80)

xrt = hespex.create_dataset("GRB-XRT", "Swift-XRT")
bat = hespex.create_dataset("GRB-BAT", "Swift-BAT")

hespex.import_multichannel(xrt, **xrt_files)
hespex.import_multichannel(bat, **bat_files)

#####################################################
#
# Ignore the lowest XRT channels, group both spectra to a signal-to-noise of 10
# and reduce the response matrices onto the same groups.

hespex.ignore_channels(xrt, [range(0, 10)])
hespex.ignore_channels(bat, [])

for ds in (xrt, bat):
    hespex.rebin(ds, min_sn=10)
    hespex.rebin_ancillary(ds)
    hespex.build_response_matrix(ds)
    print(ds.name, ds.flags, ds.response_matrix.shape)

#####################################################
#
# Look at the XRT data before and after grouping.

fig_raw = hespex.plot_raw(xrt)
fig_rebinned = hespex.plot_rebinned(xrt)

#####################################################
#
# Add some optical photometry and build the combined sequence. A power law is
# evaluated on the same energies and forward-folded through the XRT response.

uvot = hespex.create_dataset("GRB-UVOT", "Other")
hespex.import_other(uvot, [0.002, 0.003, 0.005], [12.1, 10.4, 8.8], [0.8, 0.7, 0.6])

energy, flux, flux_error = hespex.aggregate([xrt, bat, uvot])


def power_law(params, energy):
    norm, index = params
    return norm * energy**(-index)


model = hespex.evaluate_model([1., 1.7], [xrt, bat, uvot], power_law)
folded = hespex.forward_fold([1., 1.7], xrt, power_law)

plt.figure(figsize=(9, 6))
plt.errorbar(energy, flux, yerr=flux_error, ls="", marker="o", ms=3, label="data")
plt.plot(np.sort(energy), model[np.argsort(energy)], label="power law")
plt.xscale("log")
plt.yscale("log")
plt.xlabel("Energy [keV]")
plt.ylabel("Flux density")
plt.legend()
plt.show()
