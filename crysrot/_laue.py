import functools
from typing import Optional, NamedTuple, Union

import numpy as np

from ._typehints import FloatSequence, IntSequence, LaueClass, NumpyRngSeed, QuaternionLayout
from ._config import config
from . import conversion
from . import util


_r = 0.5*np.sqrt(2.)
_s = 0.5*np.sqrt(3.)

laue_classes: tuple[LaueClass, ...] = ('m-3m','m-3','6/mmm','6/m','-3m','-3','4/mmm','4/m','mmm','2/m','-1')

_names = {
    'm-3m':  'Cubic m3m',
    'm-3':   'Cubic m3 (Tetrahedral)',
    '6/mmm': 'Hexagonal 6/mmm',
    '6/m':   'Hexagonal 6/m',
    '-3m':   'Trigonal -3m',
    '-3':    'Trigonal -3',
    '4/mmm': 'Tetragonal 4/mmm',
    '4/m':   'Tetragonal 4/m',
    'mmm':   'OrthoRhombic mmm',
    '2/m':   'Monoclinic 2/m',
    '-1':    'Triclinic -1',
}

# number of ODF bins and maximum rotation angle in the fundamental zone per axis
_ODF_grids = {
    'm-3m':  ((18,18,18), (np.pi/4.,np.pi/4.,np.pi/4.)),
    'm-3':   ((36,36,36), (np.pi/2.,np.pi/2.,np.pi/2.)),
    '6/mmm': ((36,36,12), (np.pi/2.,np.pi/2.,np.pi/6.)),
    '6/m':   ((36,36,12), (np.pi/2.,np.pi/2.,np.pi/6.)),
    '-3m':   ((72,72,24), (np.pi,   np.pi,   np.pi/3.)),
    '-3':    ((72,72,24), (np.pi,   np.pi,   np.pi/3.)),
    '4/mmm': ((36,36,18), (np.pi/2.,np.pi/2.,np.pi/4.)),
    '4/m':   ((36,36,18), (np.pi/2.,np.pi/2.,np.pi/4.)),
    'mmm':   ((36,36,36), (np.pi/2.,np.pi/2.,np.pi/2.)),
    '2/m':   ((72,36,72), (np.pi,   np.pi/2.,np.pi)),
    '-1':    ((72,72,72), (np.pi,   np.pi,   np.pi)),
}

_MDF_plot_bins = {
    'm-3m':  13,
    'm-3':   18,
    '6/mmm': 36,
    '6/m':   36,
    '-3m':   36,
    '-3':    36,
    '4/mmm': 20,
    '4/m':   20,
    'mmm':   36,
    '2/m':   36,
    '-1':    36,
}

# {111}<110> slip systems as slip direction, slip plane normal
_slip_systems = {
    'm-3m': np.array([
               [ 0,+1,-1, +1,+1,+1],
               [+1, 0,-1, +1,+1,+1],
               [+1,-1, 0, +1,+1,+1],
               [+1,-1, 0, +1,+1,-1],
               [+1, 0,+1, +1,+1,-1],
               [ 0,+1,+1, +1,+1,-1],
               [+1,+1, 0, +1,-1,+1],
               [ 0,+1,+1, +1,-1,+1],
               [+1, 0,-1, +1,-1,+1],
               [+1,+1, 0, -1,+1,+1],
               [+1, 0,+1, -1,+1,+1],
               [ 0,+1,-1, -1,+1,+1]],dtype=float),
}


def _quaternion_table(tag: LaueClass) -> list[list[float]]:
    """Symmetry operators as scalar-first quaternions."""
    match tag:
        case 'm-3m':
            return [
                    [ 1.0, 0.0, 0.0, 0.0],
                    [ 0.0, 1.0, 0.0, 0.0],
                    [ 0.0, 0.0, 1.0, 0.0],
                    [ 0.0, 0.0, 0.0, 1.0],
                    [  _r,  _r, 0.0, 0.0],
                    [  _r, 0.0,  _r, 0.0],
                    [  _r, 0.0, 0.0,  _r],
                    [  _r, -_r, 0.0, 0.0],
                    [  _r, 0.0, -_r, 0.0],
                    [  _r, 0.0, 0.0, -_r],
                    [ 0.0,  _r,  _r, 0.0],
                    [ 0.0, -_r,  _r, 0.0],
                    [ 0.0, 0.0,  _r,  _r],
                    [ 0.0, 0.0, -_r,  _r],
                    [ 0.0,  _r, 0.0,  _r],
                    [ 0.0, -_r, 0.0,  _r],
                    [ 0.5, 0.5, 0.5, 0.5],
                    [ 0.5,-0.5,-0.5,-0.5],
                    [ 0.5, 0.5,-0.5, 0.5],
                    [ 0.5,-0.5, 0.5,-0.5],
                    [ 0.5,-0.5, 0.5, 0.5],
                    [ 0.5, 0.5,-0.5,-0.5],
                    [ 0.5,-0.5,-0.5, 0.5],
                    [ 0.5, 0.5, 0.5,-0.5],
                   ]
        case 'm-3':
            return [
                    [ 1.0, 0.0, 0.0, 0.0],
                    [ 0.0, 1.0, 0.0, 0.0],
                    [ 0.0, 0.0, 1.0, 0.0],
                    [ 0.0, 0.0, 0.0, 1.0],
                    [ 0.5, 0.5, 0.5, 0.5],
                    [ 0.5,-0.5,-0.5,-0.5],
                    [ 0.5, 0.5,-0.5, 0.5],
                    [ 0.5,-0.5, 0.5,-0.5],
                    [ 0.5,-0.5, 0.5, 0.5],
                    [ 0.5, 0.5,-0.5,-0.5],
                    [ 0.5,-0.5,-0.5, 0.5],
                    [ 0.5, 0.5, 0.5,-0.5],
                   ]
        case '6/mmm' | '6/m':
            ops = [
                   [ 1.0, 0.0, 0.0, 0.0],
                   [ -_s, 0.0, 0.0,-0.5],
                   [ 0.5, 0.0, 0.0,  _s],
                   [ 0.0, 0.0, 0.0, 1.0],
                   [-0.5, 0.0, 0.0,  _s],
                   [ -_s, 0.0, 0.0, 0.5],
                   [ 0.0, 1.0, 0.0, 0.0],
                   [ 0.0, -_s, 0.5, 0.0],
                   [ 0.0, 0.5, -_s, 0.0],
                   [ 0.0, 0.0, 1.0, 0.0],
                   [ 0.0,-0.5, -_s, 0.0],
                   [ 0.0,  _s, 0.5, 0.0],
                  ]
            return ops if tag == '6/mmm' else ops[:6]
        case '-3m' | '-3':
            ops = [
                   [ 1.0, 0.0, 0.0, 0.0],
                   [ 0.5, 0.0, 0.0,  _s],
                   [-0.5, 0.0, 0.0,  _s],
                   [ 0.0, 1.0, 0.0, 0.0],
                   [ 0.0,-0.5,  _s, 0.0],
                   [ 0.0,-0.5, -_s, 0.0],
                  ]
            return ops if tag == '-3m' else ops[:3]
        case '4/mmm':
            return [
                    [ 1.0, 0.0, 0.0, 0.0],
                    [ 0.0, 1.0, 0.0, 0.0],
                    [ 0.0, 0.0, 1.0, 0.0],
                    [ 0.0, 0.0, 0.0, 1.0],
                    [ -_r, 0.0, 0.0,  _r],
                    [  _r, 0.0, 0.0,  _r],
                    [ 0.0,  _r,  _r, 0.0],
                    [ 0.0, -_r,  _r, 0.0],
                   ]
        case '4/m':
            return [
                    [ 1.0, 0.0, 0.0, 0.0],
                    [ 0.0, 0.0, 0.0, 1.0],
                    [  _r, 0.0, 0.0,  _r],
                    [  _r, 0.0, 0.0, -_r],
                   ]
        case 'mmm':
            return [
                    [ 1.0, 0.0, 0.0, 0.0],
                    [ 0.0, 1.0, 0.0, 0.0],
                    [ 0.0, 0.0, 1.0, 0.0],
                    [ 0.0, 0.0, 0.0, 1.0],
                   ]
        case '2/m':
            return [
                    [ 1.0, 0.0, 0.0, 0.0],
                    [ 0.0, 0.0, 1.0, 0.0],
                   ]
        case '-1':
            return [
                    [ 1.0, 0.0, 0.0, 0.0],
                   ]
    raise KeyError(f'invalid Laue class "{tag}"')                                                  # pragma: no cover


def _sphere_directions(tag: LaueClass) -> list[np.ndarray]:
    """Crystal directions of the three families used for sphere coordinates."""
    match tag:
        case 'm-3m' | 'm-3':
            return [np.array([[1.,0.,0.],[0.,1.,0.],[0.,0.,1.]]),
                    np.array([[_r,_r,0.],[_r,0.,_r],[0.,_r,_r],[-_r,_r,0.],[-_r,0.,_r],[0.,-_r,_r]]),
                    np.array([[1.,1.,1.],[-1.,1.,1.],[1.,-1.,1.],[1.,1.,-1.]])/np.sqrt(3.)]
        case '6/mmm' | '6/m' | '-3m' | '-3':
            return [np.array([[0.,0.,1.]]),
                    np.array([[_s,0.5,0.],[0.,1.,0.],[-_s,0.5,0.]]),
                    np.array([[1.,0.,0.],[0.5,_s,0.],[-0.5,_s,0.]])]
        case '4/mmm' | '4/m':
            return [np.array([[0.,0.,1.]]),
                    np.array([[1.,0.,0.],[0.,1.,0.]]),
                    np.array([[_r,_r,0.],[-_r,_r,0.]])]
        case _:
            return [np.array([[0.,0.,1.]]),
                    np.array([[1.,0.,0.]]),
                    np.array([[0.,1.,0.]])]


class _Tables(NamedTuple):
    quaternions: np.ndarray
    matrices: np.ndarray
    matrices_single: np.ndarray
    Rodrigues_vectors: np.ndarray


class SchmidTuple(NamedTuple):
    factor: np.ndarray
    slip_system: np.ndarray
    angles: np.ndarray


class _SlipGeometry(NamedTuple):
    normals: np.ndarray
    directions: np.ndarray
    cos_phi: np.ndarray
    cos_lambda: np.ndarray


@functools.lru_cache(maxsize=None)
def _tables(tag: LaueClass) -> _Tables:
    """Read-only operator tables derived from the quaternion table."""
    qu = np.array(_quaternion_table(tag))
    assert np.allclose(np.linalg.norm(qu,axis=-1),1.,rtol=0.,atol=1.e-12), f'corrupted symmetry table for "{tag}"'

    tables = _Tables(qu,
                     conversion.qu2om(qu,layout='scalar-first'),
                     conversion.qu2om(qu,layout='scalar-first').astype(np.float32),
                     conversion.qu2ro(qu,layout='scalar-first'))
    for t in tables: t.setflags(write=False)
    return tables


def _as_quaternion(q: FloatSequence,
                   layout: Optional[QuaternionLayout]) -> np.ndarray:
    q_ = np.asarray(q)
    if q_.dtype not in (np.float32,np.float64): q_ = q_.astype(np.float64)
    return conversion.to_layout(q_,layout,'scalar-first')


def _unit(v: np.ndarray) -> np.ndarray:
    return v/np.linalg.norm(v,axis=-1,keepdims=True)


def _first_maximum(a: np.ndarray) -> np.ndarray:
    """Index of the first maximum along the last axis (ties up to rounding), axis kept."""
    return np.argmax(a >= np.max(a,axis=-1,keepdims=True)-1.e-12,axis=-1,keepdims=True)


class Laue:
    """
    Laue class (centrosymmetric point group) with symmetry operators and fundamental zones.

    The eleven Laue classes are identified by their Hermann–Mauguin symbol.
    Operator tables are shared and read-only.

    Examples
    --------
    Misorientation angle between two cubic orientations:

    >>> import numpy as np
    >>> import crysrot
    >>> m3m = crysrot.Laue('m-3m')
    >>> q = crysrot.conversion.eu2qu(np.radians([[0.,0.,0.],[90.,0.,0.]]),layout='scalar-first')
    >>> float(m3m.misorientation(q[0],q[1],layout='scalar-first')[3])
    0.0

    """

    __slots__ = ['tag']

    def __init__(self,
                 tag: LaueClass):
        """
        New Laue class.

        Parameters
        ----------
        tag : {'m-3m', 'm-3', '6/mmm', '6/m', '-3m', '-3', '4/mmm', '4/m', 'mmm', '2/m', '-1'}
            Hermann–Mauguin symbol of the Laue class.

        """
        if tag not in laue_classes:
            raise KeyError(f'invalid Laue class "{tag}", use one of {list(laue_classes)}')
        self.tag: LaueClass = tag


    def __repr__(self) -> str:
        """
        Return repr(self).

        Give short, human-readable summary.

        """
        return f'Laue class: {self.tag} ({self.name}), {self.N_operators} symmetry operators'


    def __eq__(self,
               other: object) -> bool:
        """Return self==other."""
        return NotImplemented if not isinstance(other, Laue) else self.tag == other.tag

    def __hash__(self) -> int:
        return hash(self.tag)


    @property
    def name(self) -> str:
        """Display name."""
        return _names[self.tag]

    @property
    def N_operators(self) -> int:
        """Number of symmetry operators."""
        return len(_tables(self.tag).quaternions)

    @property
    def has_inversion(self) -> bool:
        """Laue classes are centrosymmetric."""
        return True

    @property
    def quaternions(self) -> np.ndarray:
        """Symmetry operators as scalar-first quaternions, shape (N_operators,4)."""
        return _tables(self.tag).quaternions

    @property
    def matrices(self) -> np.ndarray:
        """Symmetry operators as rotation matrices, shape (N_operators,3,3)."""
        return _tables(self.tag).matrices

    @property
    def Rodrigues_vectors(self) -> np.ndarray:
        """Symmetry operators as Rodrigues–Frank vectors, shape (N_operators,4)."""
        return _tables(self.tag).Rodrigues_vectors


    def quaternion(self,
                   i: int,
                   layout: Optional[QuaternionLayout] = None) -> np.ndarray:
        """
        Symmetry operator as quaternion.

        Parameters
        ----------
        i : int
            Index of the operator.
        layout : {'scalar-first', 'vector-first'}, optional
            Quaternion layout. Defaults to the configured layout.

        Returns
        -------
        q : numpy.ndarray, shape (4)
            Quaternion of the i-th symmetry operator.

        """
        return conversion.to_layout(self.quaternions[i],'scalar-first',layout).copy()

    def matrix(self,
               i: int,
               dtype: Union[type[np.float32], type[np.float64]] = np.float64) -> np.ndarray:
        """
        Symmetry operator as rotation matrix.

        Parameters
        ----------
        i : int
            Index of the operator.
        dtype : {numpy.float64, numpy.float32}, optional
            Precision. Defaults to numpy.float64.

        Returns
        -------
        R : numpy.ndarray, shape (3,3)
            Rotation matrix of the i-th symmetry operator.

        """
        t = _tables(self.tag)
        return (t.matrices_single if np.dtype(dtype) == np.float32 else t.matrices)[i].copy()

    def Rodrigues_vector(self,
                         i: int) -> np.ndarray:
        """Symmetry operator as Rodrigues–Frank vector (+inf for 180° rotations)."""
        return self.Rodrigues_vectors[i].copy()


    @property
    def ODF_bins(self) -> np.ndarray:
        """Number of ODF bins per homochoric axis."""
        return np.array(_ODF_grids[self.tag][0])

    @property
    def ODF_half_width(self) -> np.ndarray:
        """Half width of the homochoric ODF grid per axis."""
        omega = np.array(_ODF_grids[self.tag][1])
        return (0.75*(omega-np.sin(omega)))**(1./3.)

    @property
    def ODF_step(self) -> np.ndarray:
        """Homochoric ODF bin width per axis."""
        return self.ODF_half_width/(self.ODF_bins//2)

    @property
    def ODF_size(self) -> int:
        """Total number of ODF bins."""
        return int(np.prod(self.ODF_bins))

    @property
    def MDF_size(self) -> int:
        """Total number of MDF bins (same grid as the ODF)."""
        return self.ODF_size

    @property
    def MDF_plot_bins(self) -> int:
        """Number of bins for MDF plots."""
        return _MDF_plot_bins[self.tag]


    def _equivalents(self,
                     q: np.ndarray) -> np.ndarray:
        """All symmetrically equivalent scalar-first quaternions op*q, shape (N_operators,...,4)."""
        ops = self.quaternions.astype(q.dtype).reshape((self.N_operators,)+(1,)*(q.ndim-1)+(4,))
        return conversion.multiply(ops,q,'scalar-first')


    def misorientation(self,
                       q1: FloatSequence,
                       q2: FloatSequence,
                       layout: Optional[QuaternionLayout] = None) -> np.ndarray:
        """
        Calculate misorientation with smallest rotation angle.

        Parameters
        ----------
        q1 : numpy.ndarray, shape (...,4)
            First orientations as quaternions.
        q2 : numpy.ndarray, shape (...,4)
            Second orientations as quaternions.
        layout : {'scalar-first', 'vector-first'}, optional
            Quaternion layout. Defaults to the configured layout.

        Returns
        -------
        n_omega : numpy.ndarray, shape (...,4)
            Misorientation as axis–angle pair.

        Notes
        -----
        For m-3m, a closed form equivalent to the search over
        all 24 operators is evaluated.
        For all other classes, the first operator with the smallest
        angle (in order of the operator table) is selected.

        """
        q1_ = _as_quaternion(q1,layout)
        q2_ = _as_quaternion(q2,layout)
        qr = conversion.multiply(q1_,conversion.conjugate(q2_,'scalar-first'),'scalar-first')

        match self.tag:
            case 'm-3m':
                return _misorientation_cubic(qr)
            case _:
                qc = self._equivalents(qr)
                angle = 2.*np.arccos(np.minimum(np.abs(qc[...,0]),1.))
                best = np.take_along_axis(qc,np.argmin(angle,axis=0,keepdims=True)[...,np.newaxis],axis=0)[0]
                best = np.where(best[...,0:1] < 0.,-best,best)
                n = np.linalg.norm(best[...,1:],axis=-1,keepdims=True)
                with np.errstate(invalid='ignore',divide='ignore'):
                    axis = np.where(n > 0.,best[...,1:]/n,np.array([0.,0.,1.],dtype=qr.dtype))
                return np.block([axis,2.*np.arccos(np.minimum(best[...,0:1],1.))])


    def nearest_quaternion(self,
                           q1: FloatSequence,
                           q2: FloatSequence,
                           layout: Optional[QuaternionLayout] = None) -> np.ndarray:
        """
        Find the symmetrically equivalent variant of q2 that is closest to q1.

        Parameters
        ----------
        q1 : numpy.ndarray, shape (...,4)
            Reference quaternions.
        q2 : numpy.ndarray, shape (...,4)
            Quaternions to symmetrize.
        layout : {'scalar-first', 'vector-first'}, optional
            Quaternion layout. Defaults to the configured layout.

        Returns
        -------
        q : numpy.ndarray, shape (...,4)
            Variant op*q2 with the largest ǀq1·op*q2ǀ,
            signed such that q1·q ≥ 0.

        """
        q1_ = _as_quaternion(q1,layout)
        qc = self._equivalents(_as_quaternion(q2,layout))
        dot = np.sum(q1_*qc,axis=-1)
        i = np.argmax(np.abs(dot),axis=0,keepdims=True)
        best = np.take_along_axis(qc,i[...,np.newaxis],axis=0)[0]
        best = np.where(np.take_along_axis(dot,i,axis=0)[0][...,np.newaxis] < 0.,-best,best)
        return conversion.to_layout(best,'scalar-first',layout)


    def FZ_quaternion(self,
                      q: FloatSequence,
                      layout: Optional[QuaternionLayout] = None) -> np.ndarray:
        """
        Find the symmetrically equivalent variant with the smallest rotation angle.

        Parameters
        ----------
        q : numpy.ndarray, shape (...,4)
            Quaternions.
        layout : {'scalar-first', 'vector-first'}, optional
            Quaternion layout. Defaults to the configured layout.

        Returns
        -------
        q_FZ : numpy.ndarray, shape (...,4)
            Variant op*q with largest ǀwǀ in positive real hemisphere.

        """
        qc = self._equivalents(_as_quaternion(q,layout))
        i = np.argmax(np.abs(qc[...,0]),axis=0,keepdims=True)[...,np.newaxis]
        best = np.take_along_axis(qc,i,axis=0)[0]
        best = np.where(best[...,0:1] < 0.,-best,best)
        return conversion.to_layout(best,'scalar-first',layout)


    def ODF_FZ_Rodrigues(self,
                         ro: FloatSequence) -> np.ndarray:
        """
        Reduce Rodrigues–Frank vectors to the fundamental zone of the ODF.

        Parameters
        ----------
        ro : numpy.ndarray, shape (...,4)
            Rodrigues–Frank vectors.

        Returns
        -------
        ro_FZ : numpy.ndarray, shape (...,4)
            Equivalent Rodrigues–Frank vectors closest to the origin.
            Ties are resolved in order of the operator table.

        """
        qc = self._equivalents(conversion.ro2qu(ro,layout='scalar-first'))
        roc = conversion.qu2ro(qc,layout='scalar-first')
        with np.errstate(invalid='ignore'):
            length = np.where(np.isinf(roc[...,3]),np.inf,
                              np.abs(roc[...,3])*np.linalg.norm(roc[...,:3],axis=-1))
        i = np.argmin(length,axis=0,keepdims=True)[...,np.newaxis]
        return np.take_along_axis(roc,i,axis=0)[0]


    def MDF_FZ_Rodrigues(self,
                         ro: FloatSequence) -> np.ndarray:
        """
        Reduce Rodrigues–Frank vectors to the fundamental zone of the MDF.

        Parameters
        ----------
        ro : numpy.ndarray, shape (...,4)
            Rodrigues–Frank vectors of misorientations.

        Returns
        -------
        ro_FZ : numpy.ndarray, shape (...,4)
            Representative Rodrigues–Frank vectors.

        Raises
        ------
        NotImplementedError
            For Laue classes without a rule for the MDF fundamental zone
            (6/m, -3, 4/m, 2/m, -1).

        Notes
        -----
        The vector is reduced to the fundamental zone of the ODF.
        Then, the absolute values of the axis components are taken.
        For cubic classes, they are additionally sorted in descending order.

        """
        match self.tag:
            case 'm-3m' | 'm-3':
                rule = lambda n: -np.sort(-np.abs(n),axis=-1)                                       # noqa
            case '6/mmm' | '-3m' | '4/mmm' | 'mmm':
                rule = np.abs
            case _:
                raise NotImplementedError(f'MDF fundamental zone not implemented for Laue class "{self.tag}"')

        ax = conversion.ro2ax(self.ODF_FZ_Rodrigues(ro))
        ax[...,:3] = rule(ax[...,:3])
        return conversion.ax2ro(ax)


    def _bin(self,
             ro: FloatSequence) -> np.ndarray:
        """Flat index of the homochoric bin."""
        ho = conversion.ro2ho(ro)
        bins = self.ODF_bins
        idx = np.clip(np.floor((ho+self.ODF_half_width)/self.ODF_step).astype(np.int64),0,bins-1)
        return idx[...,0] + idx[...,1]*bins[0] + idx[...,2]*bins[0]*bins[1]

    def ODF_bin(self,
                ro: FloatSequence) -> np.ndarray:
        """
        Index of the ODF bin.

        Parameters
        ----------
        ro : numpy.ndarray, shape (...,4)
            Rodrigues–Frank vectors in the fundamental zone of the ODF.

        Returns
        -------
        idx : numpy.ndarray of int, shape (...)
            Flat bin index in [0,ODF_size).

        """
        return self._bin(ro)

    def misorientation_bin(self,
                           ro: FloatSequence) -> np.ndarray:
        """
        Index of the MDF bin.

        Parameters
        ----------
        ro : numpy.ndarray, shape (...,4)
            Rodrigues–Frank vectors in the fundamental zone of the MDF.

        Returns
        -------
        idx : numpy.ndarray of int, shape (...)
            Flat bin index in [0,MDF_size).

        """
        return self._bin(ro)


    def _bin_homochoric(self,
                        choose: IntSequence,
                        random: FloatSequence) -> np.ndarray:
        """Homochoric vector at relative position 'random' within bin 'choose'."""
        choose_ = np.asarray(choose,dtype=np.int64)
        bins = self.ODF_bins
        idx = np.stack([choose_%bins[0],(choose_//bins[0])%bins[1],choose_//(bins[0]*bins[1])],axis=-1)
        return self.ODF_step*(idx+np.asarray(random,dtype=float)) - self.ODF_half_width

    def random_Euler_angles_in_bin(self,
                                   choose: IntSequence,
                                   random: FloatSequence) -> np.ndarray:
        """
        Euler angles of an orientation within an ODF bin.

        Parameters
        ----------
        choose : int or numpy.ndarray of int, shape (...)
            Flat ODF bin index.
        random : numpy.ndarray, shape (...,3)
            Relative position within the bin, each component in [0,1).

        Returns
        -------
        phi : numpy.ndarray, shape (...,3)
            Bunge Euler angles of the orientation reduced to the fundamental zone.

        """
        return conversion.ro2eu(self.ODF_FZ_Rodrigues(conversion.ho2ro(self._bin_homochoric(choose,random))))

    def random_Rodrigues_vector_in_bin(self,
                                       choose: IntSequence,
                                       random: FloatSequence) -> np.ndarray:
        """
        Rodrigues–Frank vector of a misorientation within an MDF bin.

        Parameters
        ----------
        choose : int or numpy.ndarray of int, shape (...)
            Flat MDF bin index.
        random : numpy.ndarray, shape (...,3)
            Relative position within the bin, each component in [0,1).

        Returns
        -------
        rho : numpy.ndarray, shape (...,4)
            Rodrigues–Frank vector reduced to the fundamental zone of the MDF.

        """
        return self.MDF_FZ_Rodrigues(conversion.ho2ro(self._bin_homochoric(choose,random)))

    def randomize_Euler_angles(self,
                               eu: FloatSequence,
                               rng_seed: Optional[NumpyRngSeed] = None) -> np.ndarray:
        """
        Apply a randomly selected symmetry operator.

        Parameters
        ----------
        eu : numpy.ndarray, shape (...,3)
            Bunge Euler angles.
        rng_seed : {None, int, array_like[ints], SeedSequence, BitGenerator, Generator}, optional
            A seed to initialize the BitGenerator.
            Defaults to None, i.e. unpredictable entropy will be pulled from the OS.

        Returns
        -------
        phi : numpy.ndarray, shape (...,3)
            Symmetrically equivalent Bunge Euler angles.

        """
        rng = np.random.default_rng(rng_seed)
        q = conversion.eu2qu(eu,layout='scalar-first')
        op = self.quaternions.astype(q.dtype)[rng.integers(self.N_operators,size=q.shape[:-1])]
        return conversion.qu2eu(conversion.multiply(op,q,'scalar-first'),layout='scalar-first')


    def sphere_coordinates(self,
                           eu: FloatSequence) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
        """
        Crystal directions of three direction families in the sample frame.

        For each orientation g and each direction d of a family,
        gᵀ·d and -gᵀ·d are computed.

        Parameters
        ----------
        eu : numpy.ndarray, shape (N,3)
            Bunge Euler angles.

        Returns
        -------
        xyz : tuple of three numpy.ndarray, shape (N,2*n_i,3)
            Unit vectors for each of the three families with n_i directions.

        Notes
        -----
        The families are <001>, <011>, <111> for cubic,
        [001], <100>, <110> for tetragonal,
        [0001], <10-10>, <2-1-10> for hexagonal and trigonal,
        and [001], [100], [010] for all other classes.

        """
        eu_ = np.asarray(eu)
        if eu_.dtype not in (np.float32,np.float64): eu_ = eu_.astype(np.float64)
        eu_ = eu_.reshape(-1,3)

        families = _sphere_directions(self.tag)
        d = np.concatenate(families).astype(eu_.dtype)
        out = np.empty((len(eu_),2*len(d),3),dtype=eu_.dtype)
        util.parallel_chunks(functools.partial(_sphere_coordinates,d),eu_,out,
                             N_threads=config.N_threads,
                             chunk_size_min=config.get('chunk_size_min',1024))

        split = 2*np.cumsum([len(f) for f in families])[:-1]
        return tuple(np.split(out,split,axis=1))                                                    # type: ignore[return-value]


    def _slip_systems(self) -> tuple[np.ndarray, np.ndarray]:
        """Unit slip plane normals and slip directions, shape (N_slip,3) each."""
        if self.tag not in _slip_systems:
            raise NotImplementedError(f'slip systems not available for Laue class "{self.tag}"')
        s = _slip_systems[self.tag]
        return _unit(s[:,3:]),_unit(s[:,:3])

    def Schmid_factor(self,
                      load: FloatSequence,
                      plane: Optional[FloatSequence] = None,
                      direction: Optional[FloatSequence] = None) -> SchmidTuple:
        """
        Find the slip system with the largest Schmid factor.

        Parameters
        ----------
        load : numpy.ndarray, shape (...,3)
            Loading direction in the crystal frame.
        plane : numpy.ndarray, shape (3), optional
            Slip plane normal. Needs to be given together with 'direction'.
        direction : numpy.ndarray, shape (3), optional
            Slip direction. Needs to be given together with 'plane'.

        Returns
        -------
        factor : numpy.ndarray, shape (...)
            Schmid factor ǀcos ϕǀ·ǀcos λǀ.
        slip_system : numpy.ndarray of int, shape (...)
            Index of the slip system or, if 'plane' and 'direction'
            are given, of the symmetry operator.
        angles : numpy.ndarray, shape (...,2)
            Angle ϕ between load and slip plane normal and
            angle λ between load and slip direction.

        Raises
        ------
        NotImplementedError
            If 'plane' and 'direction' are omitted and no slip systems
            are tabulated for the Laue class (all but m-3m).

        Notes
        -----
        Without 'plane' and 'direction', the twelve {111}<110> slip systems
        of cubic crystals are evaluated. Otherwise, all symmetrically equivalent
        variants of the given slip system whose plane normal has a non-negative
        z component are evaluated. Ties are resolved in favor of the lower index.

        """
        l = _unit(np.asarray(load,dtype=np.float64))
        if plane is None and direction is None:
            n,d = self._slip_systems()
            valid = np.ones(len(n),dtype=bool)
        elif plane is None or direction is None:
            raise ValueError('slip plane and slip direction need to be given together')
        else:
            n = np.einsum('kij,j->ki',self.matrices,np.asarray(plane,dtype=np.float64))
            d = np.einsum('kij,j->ki',self.matrices,np.asarray(direction,dtype=np.float64))
            valid = n[:,2] > -1.e-12
            n,d = _unit(n),_unit(d)

        cos = np.abs(np.stack([l@n.T,l@d.T],axis=-1))
        factor = np.where(valid,np.prod(cos,axis=-1),-1.)
        i = _first_maximum(factor)
        return SchmidTuple(np.take_along_axis(factor,i,axis=-1)[...,0],
                           i[...,0],
                           np.arccos(np.clip(np.take_along_axis(cos,i[...,np.newaxis],axis=-2)[...,0,:],0.,1.)))


    def _slip_in_sample(self,
                        q1: FloatSequence,
                        q2: FloatSequence,
                        load: FloatSequence,
                        layout: Optional[QuaternionLayout]) -> tuple[_SlipGeometry, _SlipGeometry]:
        """Slip systems of two grains in the sample frame with their orientation to the load."""
        n,d = self._slip_systems()
        q1_ = _as_quaternion(q1,layout).astype(np.float64)
        q2_ = _as_quaternion(q2,layout).astype(np.float64)
        l = _unit(np.asarray(load,dtype=np.float64))
        shape = np.broadcast_shapes(q1_.shape[:-1],q2_.shape[:-1],l.shape[:-1])

        grains = []
        for q in (q1_,q2_):
            om = conversion.qu2om(np.broadcast_to(q,shape+(4,)),layout='scalar-first')
            n_s = np.einsum('...ji,kj->...ki',om,n)
            d_s = np.einsum('...ji,kj->...ki',om,d)
            grains.append(_SlipGeometry(n_s,d_s,
                                        np.abs(np.einsum('...ki,...i->...k',n_s,l)),
                                        np.abs(np.einsum('...ki,...i->...k',d_s,l))))
        return grains[0],grains[1]

    def m_prime(self,
                q1: FloatSequence,
                q2: FloatSequence,
                load: FloatSequence,
                layout: Optional[QuaternionLayout] = None) -> np.ndarray:
        """
        Calculate the slip transmission parameter m′ of two grains.

        Parameters
        ----------
        q1 : numpy.ndarray, shape (...,4)
            Orientations of the first grain as quaternions.
        q2 : numpy.ndarray, shape (...,4)
            Orientations of the second grain as quaternions.
        load : numpy.ndarray, shape (...,3)
            Loading direction in the sample frame.
        layout : {'scalar-first', 'vector-first'}, optional
            Quaternion layout. Defaults to the configured layout.

        Returns
        -------
        m_prime : numpy.ndarray, shape (...)
            ǀn₁·n₂ǀ·ǀd₁·d₂ǀ of the slip systems with the
            largest Schmid factor in either grain.

        Raises
        ------
        NotImplementedError
            For Laue classes without tabulated slip systems (all but m-3m).

        References
        ----------
        J. Luster and M.A. Morris, Metallurgical and Materials Transactions A 26:1745-1756, 1995

        """
        g_1,g_2 = self._slip_in_sample(q1,q2,load,layout)
        i_1 = _first_maximum(g_1.cos_phi*g_1.cos_lambda)[...,np.newaxis]
        i_2 = _first_maximum(g_2.cos_phi*g_2.cos_lambda)[...,np.newaxis]
        n_1,d_1 = (np.take_along_axis(v,i_1,axis=-2)[...,0,:] for v in (g_1.normals,g_1.directions))
        n_2,d_2 = (np.take_along_axis(v,i_2,axis=-2)[...,0,:] for v in (g_2.normals,g_2.directions))
        return np.abs(np.sum(n_1*n_2,axis=-1))*np.abs(np.sum(d_1*d_2,axis=-1))


    def _transmission(self,
                      q1: FloatSequence,
                      q2: FloatSequence,
                      load: FloatSequence,
                      layout: Optional[QuaternionLayout]) -> tuple[np.ndarray, ...]:
        """
        Per slip system of the first grain: Schmid factor, ǀcos λǀ, and the sums
        of ǀd₁·d₂ǀ and of ǀn₁·n₂ǀ over all slip systems of the second grain.
        """
        g_1,g_2 = self._slip_in_sample(q1,q2,load,layout)
        return (g_1.cos_phi*g_1.cos_lambda,
                g_1.cos_lambda,
                np.sum(np.abs(np.einsum('...ki,...li->...kl',g_1.directions,g_2.directions)),axis=-1),
                np.sum(np.abs(np.einsum('...ki,...li->...kl',g_1.normals,g_2.normals)),axis=-1))

    def F1(self,
           q1: FloatSequence,
           q2: FloatSequence,
           load: FloatSequence,
           max_Schmid: bool = True,
           layout: Optional[QuaternionLayout] = None) -> np.ndarray:
        """
        Calculate the slip transmission parameter F1 of two grains.

        F1 = m·ǀcos λ₁ǀ·Σⱼǀd₁·d₂ⱼǀ, with Schmid factor m of a slip system
        of the first grain and sum over all slip systems of the second grain.

        Parameters
        ----------
        q1 : numpy.ndarray, shape (...,4)
            Orientations of the first grain as quaternions.
        q2 : numpy.ndarray, shape (...,4)
            Orientations of the second grain as quaternions.
        load : numpy.ndarray, shape (...,3)
            Loading direction in the sample frame.
        max_Schmid : bool, optional
            Evaluate for the slip system with the largest Schmid factor.
            If False, the largest value over all slip systems is returned.
            Defaults to True.
        layout : {'scalar-first', 'vector-first'}, optional
            Quaternion layout. Defaults to the configured layout.

        Returns
        -------
        F1 : numpy.ndarray, shape (...)
            Slip transmission parameter.

        Raises
        ------
        NotImplementedError
            For Laue classes without tabulated slip systems (all but m-3m).

        """
        m,cos_lambda,D,_ = self._transmission(q1,q2,load,layout)
        return _select(m*cos_lambda*D,m,max_Schmid)

    def F1spt(self,
              q1: FloatSequence,
              q2: FloatSequence,
              load: FloatSequence,
              max_Schmid: bool = True,
              layout: Optional[QuaternionLayout] = None) -> np.ndarray:
        """
        Calculate the slip transmission parameter F1spt of two grains.

        F1spt = F1·Σⱼǀn₁·n₂ⱼǀ, i.e. F1 weighted with the slip plane alignment.
        Parameters as for F1.

        """
        m,cos_lambda,D,N = self._transmission(q1,q2,load,layout)
        return _select(m*cos_lambda*D*N,m,max_Schmid)

    def F7(self,
           q1: FloatSequence,
           q2: FloatSequence,
           load: FloatSequence,
           max_Schmid: bool = True,
           layout: Optional[QuaternionLayout] = None) -> np.ndarray:
        """
        Calculate the slip transmission parameter F7 of two grains.

        F7 = cos²λ₁·Σⱼǀd₁·d₂ⱼǀ. Parameters as for F1.

        """
        m,cos_lambda,D,_ = self._transmission(q1,q2,load,layout)
        return _select(cos_lambda**2*D,m,max_Schmid)


def _sphere_coordinates(d: np.ndarray,
                        eu: np.ndarray) -> np.ndarray:
    """Rotate directions by transposed orientation matrices, each followed by its antipode."""
    v = np.einsum('nji,kj->nki',conversion.eu2om(eu),d)
    return np.stack([v,-v],axis=2).reshape(len(eu),-1,3)


def _select(F: np.ndarray,
            m: np.ndarray,
            max_Schmid: bool) -> np.ndarray:
    """F of the slip system with the largest Schmid factor m or largest F."""
    return np.take_along_axis(F,_first_maximum(m),axis=-1)[...,0] if max_Schmid else np.max(F,axis=-1)


def _misorientation_cubic(qr: np.ndarray) -> np.ndarray:
    """
    Closed form of the m-3m disorientation.

    The largest scalar part among all equivalents is the maximum of
    the largest component, the sum of the two largest components over √2,
    and the sum of all components over 2 (absolute values).
    """
    a,b,c,d = np.moveaxis(np.sort(np.abs(qr),axis=-1),-1,0)

    w_2 = (c+d)/np.sqrt(2.)
    w_3 = (a+b+c+d)*0.5
    case = np.where(w_3 > np.maximum(d,w_2),3,np.where(w_2 > d,2,1))
    w = np.select([case == 1,case == 2],[d,w_2],w_3)

    theta = np.arccos(np.clip(w,-1.,1.))
    s = np.sin(theta)
    n = np.select([(case == 1)[...,np.newaxis],(case == 2)[...,np.newaxis]],
                  [np.stack([a,b,c],axis=-1),
                   np.stack([a-b,a+b,c-d],axis=-1)/np.sqrt(2.)],
                  np.stack([a-b+c-d,a+b-c-d,-a+b+c-d],axis=-1)*0.5)
    with np.errstate(invalid='ignore',divide='ignore'):
        n = n/s[...,np.newaxis]
        l = np.linalg.norm(n,axis=-1,keepdims=True)
        axis = np.where(np.logical_and(l > 0.,theta[...,np.newaxis] > 0.),n/l,np.array([0.,0.,1.],dtype=qr.dtype))
    return np.block([axis,(2.*theta)[...,np.newaxis]]).astype(qr.dtype,copy=False)
