"""
Conversion between rotation representations and reduction by crystal symmetry.

References
----------
D. Rowenhorst et al., Modelling and Simulation in Materials Science and Engineering 23:083501, 2015
https://doi.org/10.1088/0965-0393/23/8/083501
"""

from pathlib import Path as _Path
import re as _re
import logging

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')

name = 'crysrot'
with open(_Path(__file__).parent/_Path('VERSION')) as _f:
    version = _re.sub(r'^v','',_f.readline().strip())
    __version__ = version

from .                  import _typehints       # noqa
from .                  import util             # noqa
# Modules that contain only one class (of the same name), are prefixed by a '_'.
# For example, '_laue' contains a class called 'Laue' which is imported as 'crysrot.Laue'.
from ._environment      import Environment      # noqa
from ._config           import Config, config   # noqa
from .                  import conversion       # noqa
from .                  import checks           # noqa
from ._rotation         import Rotation         # noqa
from ._laue             import Laue             # noqa
from ._orientationarray import OrientationArray, convert # noqa
