import copy
import logging
from functools import partial
from typing import Optional, Callable

import numpy as np

from ._typehints import FloatSequence, QuaternionLayout
from ._config import config
from . import conversion
from . import checks
from . import util


logger = logging.getLogger(__name__)


def _flat(f: Callable[[np.ndarray], np.ndarray],
          a: np.ndarray) -> np.ndarray:
    """Evaluate conversion and flatten each tuple."""
    return f(a).reshape(len(a),-1)


class OrientationArray:
    """
    Array of rotations in one representation.

    Data is stored as (N,n) array, where n is the number of components
    of the representation. Rotation matrices have 9 components (row-major).
    The precision (float32 or float64) of the input is preserved.

    Examples
    --------
    Convert Euler angles to quaternions:

    >>> import numpy as np
    >>> import crysrot
    >>> eu = crysrot.OrientationArray(np.zeros((2,3)),'Euler',label='grains')
    >>> eu.to('qu').data
    array([[1., 0., 0., 0.],
           [1., 0., 0., 0.]])

    """

    __slots__ = ['data','representation','label','layout']

    def __init__(self,
                 data: FloatSequence,
                 representation: str,
                 label: str = '',
                 layout: Optional[QuaternionLayout] = None):
        """
        New array of rotations.

        Parameters
        ----------
        data : numpy.ndarray, shape (N*n) or (N,n)
            Rotations. Rotation matrices can also be given as (N,3,3).
        representation : str
            Key (e.g. 'eu') or name (e.g. 'Euler') of the representation.
        label : str, optional
            Label used in diagnostic messages.
        layout : {'scalar-first', 'vector-first'}, optional
            Quaternion layout of input and output.
            Defaults to the configured layout.

        """
        self.representation = conversion.representation(representation)
        self.label = label
        self.layout = conversion.layout_or_default(layout)

        n = conversion.components[self.representation]
        a = np.array(data)
        if a.dtype not in (np.float32,np.float64): a = a.astype(np.float64)
        if a.ndim == 1:
            if a.size % n != 0:
                raise ValueError(f'size {a.size} of "{label}" is not a multiple of {n} ({conversion.names[self.representation]})')
            a = a.reshape(-1,n)
        elif self.representation == 'om' and a.ndim == 3 and a.shape[1:] == (3,3):
            a = a.reshape(-1,9)
        elif a.ndim != 2 or a.shape[1] != n:
            raise ValueError(f'shape {a.shape} of "{label}" does not match {n} components ({conversion.names[self.representation]})')
        self.data: np.ndarray = a


    def __repr__(self) -> str:
        """
        Return repr(self).

        Give short, human-readable summary.

        """
        return '\n'.join([f'{conversion.names[self.representation]}'
                          + (f' ({self.layout})' if self.representation == 'qu' else '')
                          + (f' "{self.label}"' if self.label else '')
                          + f': {len(self)} × {self.components} {self.data.dtype}',
                          str(self.data)])


    def __copy__(self) -> 'OrientationArray':
        """
        Return deepcopy(self).

        Create deep copy.

        """
        return copy.deepcopy(self)

    copy = __copy__


    def __len__(self) -> int:
        """Return number of tuples."""
        return len(self.data)

    def __array__(self, dtype=None, copy=None):
        """Initializer for numpy."""
        return np.array(self.data,dtype=dtype) if copy else np.asarray(self.data,dtype=dtype)


    @property
    def components(self) -> int:
        """Number of components per tuple."""
        return conversion.components[self.representation]

    @property
    def shape(self) -> tuple[int, int]:
        return self.data.shape


    def check(self,
              tolerance: Optional[float] = None) -> checks.CheckResult:
        """
        Check validity of each tuple.

        Parameters
        ----------
        tolerance : float, optional
            Allowed deviation of quaternion and axis norms from unity.
            Defaults to 1e-6 for single and 1e-8 for double precision.

        Returns
        -------
        result : crysrot.checks.CheckResult
            Code (int array) and message (list) per tuple.

        """
        return checks.check(self.data,self.representation,self.layout,
                            (1.e-6 if self.data.dtype == np.float32 else 1.e-8) if tolerance is None else tolerance)


    def _report(self):
        """Log failed validity checks, one warning per failure code."""
        result = self.check()
        code = np.asarray(result.code)
        for c in np.unique(code[code != 1]):
            first = int(np.flatnonzero(code == c)[0])
            logger.warning(util.warn(f'{self.label or conversion.names[self.representation]}: '
                                     f'{np.count_nonzero(code == c)} of {len(self)} tuples failed check '
                                     f'(code {c}), first at {first}: {result.msg[first]}'))


    def to(self,
           representation: str) -> 'OrientationArray':
        """
        Convert to other representation.

        Data is checked for validity before the conversion.
        Failed checks are logged as warnings, the conversion proceeds regardless.
        The conversion is evaluated chunk-wise on a pool of threads.

        Parameters
        ----------
        representation : str
            Key or name of the target representation.

        Returns
        -------
        converted : crysrot.OrientationArray
            Rotations in target representation with the same label, layout, and precision.

        """
        destination = conversion.representation(representation)
        if destination == self.representation:
            return self.copy()

        self._report()

        f = conversion.get(self.representation,destination)
        if 'qu' in (self.representation,destination):
            f = partial(f,layout=self.layout)

        out = np.empty((len(self),conversion.components[destination]),dtype=self.data.dtype)
        util.parallel_chunks(partial(_flat,f),self.data,out,
                             N_threads=config.N_threads,
                             chunk_size_min=config.get('chunk_size_min',1024))

        return OrientationArray(out,destination,self.label,self.layout)


def convert(a: FloatSequence,
            source: str,
            destination: str,
            layout: Optional[QuaternionLayout] = None,
            label: str = '') -> np.ndarray:
    """
    Convert an array of rotations between representations.

    Parameters
    ----------
    a : numpy.ndarray, shape (N*n) or (N,n)
        Rotations in source representation.
    source : str
        Key or name of the input representation.
    destination : str
        Key or name of the output representation.
    layout : {'scalar-first', 'vector-first'}, optional
        Quaternion layout. Defaults to the configured layout.
    label : str, optional
        Label used in diagnostic messages.

    Returns
    -------
    b : numpy.ndarray, shape (N,m)
        Rotations in destination representation.
        Rotation matrices are returned row-major with 9 components.

    """
    return OrientationArray(a,source,label,layout).to(destination).data
