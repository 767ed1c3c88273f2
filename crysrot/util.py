"""Miscellaneous helper functionality."""

import contextlib as _contextlib
from functools import partial as _partial
from multiprocessing.pool import ThreadPool as _ThreadPool
from pathlib import Path as _Path
import logging
from typing import Callable as _Callable, Literal as _Literal, Any as _Any, \
                   TextIO as _TextIO, Generator as _Generator

import numpy as _np

from ._typehints import FileHandle as _FileHandle


logger = logging.getLogger(__name__)

# https://svn.blender.org/svnroot/bf-blender/trunk/blender/build_files/scons/tools/bcolors.py
# https://stackoverflow.com/questions/287871
_colors = {
           'warning':   '\033[93m',
           'end_color': '\033[0m',
           'bold':      '\033[1m',
          }

####################################################################################################
# Functions
####################################################################################################
def srepr(msg,
          glue: str = '\n',
          quote: bool = False) -> str:
    r"""
    Join (quoted) items with glue string.

    Parameters
    ----------
    msg : (sequence of) object with __repr__
        Items to join.
    glue : str, optional
        Glue used for joining operation. Defaults to '\n'.
    quote : bool, optional
        Quote items. Defaults to False.

    Returns
    -------
    joined : str
        String representation of the joined and quoted items.
    """
    q = '"' if quote else ''
    if (not hasattr(msg, 'strip') and
           (hasattr(msg, '__getitem__') or
            hasattr(msg, '__iter__'))):
        return glue.join(q+str(x)+q for x in msg)
    else:
        return q+(msg if isinstance(msg,str) else repr(msg))+q


def emph(msg) -> str:
    """
    Format with emphasis.

    Parameters
    ----------
    msg : (sequence of) object with __repr__
        Message to format.

    Returns
    -------
    formatted : str
        Formatted string representation of the joined items.
    """
    return _colors['bold']+srepr(msg)+_colors['end_color']

def warn(msg) -> str:
    """
    Format for warning.

    Parameters
    ----------
    msg : (sequence of) object with __repr__
        Message to format.

    Returns
    -------
    formatted : str
        Formatted string representation of the joined items.
    """
    return _colors['warning']+emph(msg)+_colors['end_color']


@_contextlib.contextmanager
def open_text(fname: _FileHandle,
              mode: _Literal['r','w'] = 'r') -> _Generator[_TextIO, None, None]:                    # noqa
    """
    Open a text file with Unix line endings.

    If a path or string is given, a context manager ensures that
    the file handle is closed.
    If a file handle is given, it remains unmodified.

    Parameters
    ----------
    fname : file, str, or pathlib.Path
        Name or handle of file.
    mode : {'r','w'}, optional
        Access mode: 'r'ead or 'w'rite, defaults to 'r'.

    Returns
    -------
    f : file handle
        File handle for a text file.
    """
    if isinstance(fname, (str,_Path)):
        fhandle = open(_Path(fname).expanduser(),mode,newline=('\n' if mode == 'w' else None))
        yield fhandle
        fhandle.close()
    else:
        yield fname


def to_list(a: _Any) -> list:
    """
    Put into list.

    Parameters
    ----------
    a : any
        Variable to put into list or convert to list.

    Returns
    -------
    l : list
        Data in list.
    """
    return [a] if not hasattr(a,'__iter__') or isinstance(a,str) else list(a)


def chunk_bounds(N: int,
                 N_threads: int,
                 chunk_size_min: int = 1) -> _np.ndarray:
    """
    Split the index range [0,N) into contiguous chunks.

    Parameters
    ----------
    N : int
        Number of items.
    N_threads : int
        Maximum number of chunks.
    chunk_size_min : int, optional
        Minimum number of items per chunk. Defaults to 1.

    Returns
    -------
    bounds : numpy.ndarray, shape (N_chunks+1)
        Start of each chunk followed by the end of the last one.

    Examples
    --------
    >>> from crysrot import util
    >>> util.chunk_bounds(10,3)
    array([ 0,  3,  6, 10])
    >>> util.chunk_bounds(10,3,chunk_size_min=8)
    array([ 0, 10])
    """
    N_chunks = max(1,min(N_threads,N//max(1,chunk_size_min)))
    return _np.linspace(0,N,N_chunks+1,dtype=int)


def _evaluate_chunk(func: _Callable[[_np.ndarray], _np.ndarray],
                    data: _np.ndarray,
                    out: _np.ndarray,
                    bounds: tuple[int, int]) -> tuple[int, int]:
    out[bounds[0]:bounds[1]] = func(data[bounds[0]:bounds[1]])
    return bounds


def parallel_chunks(func: _Callable[[_np.ndarray], _np.ndarray],
                    data: _np.ndarray,
                    out: _np.ndarray,
                    N_threads: int = 1,
                    chunk_size_min: int = 1024) -> _np.ndarray:
    """
    Evaluate a vectorized function chunk-wise on a pool of threads.

    Parameters
    ----------
    func : callable
        Function mapping an array of shape (M,...) to an array
        that fits into out[:M].
    data : numpy.ndarray, shape (N,...)
        Input data.
    out : numpy.ndarray, shape (N,...)
        Preallocated output. Each chunk writes only to its own slice.
    N_threads : int, optional
        Number of worker threads. Defaults to 1.
    chunk_size_min : int, optional
        Minimum number of items per chunk. Defaults to 1024.

    Returns
    -------
    out : numpy.ndarray, shape (N,...)
        The filled output array.
    """
    if len(data) != len(out):
        raise ValueError(f'length mismatch of input ({len(data)}) and output ({len(out)})')

    if len(data) == 0: return out

    bounds = chunk_bounds(len(data),N_threads,chunk_size_min)
    chunks = list(zip(bounds[:-1],bounds[1:]))
    logger.debug(f'evaluating {len(data)} items in {len(chunks)} chunk(s)')

    if len(chunks) == 1:
        _evaluate_chunk(func,data,out,chunks[0])
    else:
        with _ThreadPool(len(chunks)) as pool:
            for _ in pool.imap_unordered(_partial(_evaluate_chunk,func,data,out),chunks): pass

    return out
