"""Functionality for typehints."""

from typing import Sequence, Union, Literal, TextIO
from pathlib import Path

import numpy as np


FloatSequence = Union[np.ndarray,Sequence[float]]
IntSequence = Union[np.ndarray,Sequence[int]]
FileHandle = Union[TextIO, str, Path]
Representation = Literal['eu', 'om', 'qu', 'ax', 'ro', 'ho', 'cu']
QuaternionLayout = Literal['scalar-first', 'vector-first']
LaueClass = Literal['m-3m', 'm-3', '6/mmm', '6/m', '-3m', '-3', '4/mmm', '4/m', 'mmm', '2/m', '-1']
NumpyRngSeed = Union[int, IntSequence, np.random.SeedSequence, np.random.Generator]
