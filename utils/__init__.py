"""
Utility package setup.

Enables pandas Copy-on-Write globally so result tables handed back to
callers never alias the search's internal column lists.
"""

import pandas as pd

# Always on from pandas 3, where setting the option is deprecated
if int(pd.__version__.split('.')[0]) < 3:
    pd.options.mode.copy_on_write = True
