import copy
from typing import Optional, Union, Sequence, Tuple, TypeVar

import numpy as np

from ._typehints import FloatSequence, IntSequence, NumpyRngSeed, QuaternionLayout
from . import conversion
from . import checks


MyType = TypeVar('MyType', bound='Rotation')

class Rotation:
    u"""
    Rotation with functionality for conversion between different representations.

    The quaternion is stored scalar-first with a non-negative real part.
    Conventions are those of 'crysrot.conversion' (P = +1).

    Examples
    --------
    Compound rotations R1 (first) and R2 (second):

    >>> import numpy as np
    >>> import crysrot
    >>> R1 = crysrot.Rotation.from_random()
    >>> R2 = crysrot.Rotation.from_random()
    >>> R = R2 * R1
    >>> np.allclose(R.as_matrix(), np.dot(R2.as_matrix(),R1.as_matrix()))
    True

    """

    __slots__ = ['quaternion']

    def __init__(self,
                 rotation: Union[FloatSequence, 'Rotation'] = np.array([1.,0.,0.,0.])):
        """
        New rotation.

        Parameters
        ----------
        rotation : list, numpy.ndarray, or Rotation, optional
            Unit quaternion (scalar-first) in positive real hemisphere.
            Use .from_quaternion to perform a sanity check.
            Defaults to no rotation.

        """
        self.quaternion: np.ndarray
        if isinstance(rotation,Rotation):
            self.quaternion = rotation.quaternion.copy()
        elif np.array(rotation).shape[-1:] == (4,):
            self.quaternion = np.array(rotation,dtype=float)
        else:
            raise TypeError('"rotation" is neither a Rotation nor a quaternion')


    def __repr__(self) -> str:
        """
        Return repr(self).

        Give short, human-readable summary.

        """
        return f'Quaternion{" " if self.quaternion.shape == (4,) else "s of shape "+str(self.quaternion.shape[:-1])+chr(10)}'\
               + str(self.quaternion)


    def __copy__(self: MyType,
                 rotation: Union[None, FloatSequence, 'Rotation'] = None) -> MyType:
        """
        Return deepcopy(self).

        Create deep copy.

        """
        dup = copy.deepcopy(self)
        if rotation is not None:
            dup.quaternion = Rotation(rotation).quaternion
        return dup

    copy = __copy__


    def __getitem__(self,
                    item: Union[Tuple[Union[None, int, slice]], int, bool, np.bool_, np.ndarray]):
        """Return self[item]."""
        if self.shape == ():
            raise IndexError('scalar rotation cannot be indexed')
        return self.copy(self.quaternion[item+(slice(None),)] if isinstance(item,tuple) else self.quaternion[item])


    def __eq__(self,
               other: object) -> bool:
        """
        Return self==other.

        Test equality of other. Antipodal quaternions are considered equal.

        Parameters
        ----------
        other : Rotation
            Rotation to check for equality.

        """
        return NotImplemented if not isinstance(other, Rotation) else \
               np.logical_or(np.all(self.quaternion ==     other.quaternion,axis=-1),
                             np.all(self.quaternion == -1.*other.quaternion,axis=-1))


    def __ne__(self,
               other: object) -> bool:
        """Return self!=other."""
        return np.logical_not(self==other) if isinstance(other, Rotation) else NotImplemented


    def isclose(self: MyType,
                other: MyType,
                rtol: float = 1.e-5,
                atol: float = 1.e-8) -> np.ndarray:
        """
        Report where values are approximately equal to corresponding ones of other Rotation.

        Parameters
        ----------
        other : Rotation
            Rotation to compare against.
        rtol : float, optional
            Relative tolerance of equality.
        atol : float, optional
            Absolute tolerance of equality.

        Returns
        -------
        mask : numpy.ndarray of bool, shape (self.shape)
            Mask indicating where corresponding rotations are close.

        """
        s = self.quaternion
        o = other.quaternion
        return np.logical_or(np.all(np.isclose(s,    o,rtol,atol),axis=-1),
                             np.all(np.isclose(s,-1.*o,rtol,atol),axis=-1))


    def allclose(self: MyType,
                 other: MyType,
                 rtol: float = 1.e-5,
                 atol: float = 1.e-8) -> bool:
        """Test whether all values are approximately equal to corresponding ones of other Rotation."""
        return bool(np.all(self.isclose(other,rtol,atol)))


    def __array__(self, dtype=None, copy=None):
        """Initializer for numpy."""
        return np.array(self.quaternion,dtype=dtype) if copy else np.asarray(self.quaternion,dtype=dtype)


    @property
    def size(self) -> int:
        return self.quaternion[...,0].size

    @property
    def shape(self) -> Tuple[int, ...]:
        return self.quaternion[...,0].shape


    def __len__(self) -> int:
        """
        Return len(self).

        Length of leading/leftmost dimension of array.

        """
        return 0 if self.shape == () else self.shape[0]


    def __invert__(self: MyType) -> MyType:
        """
        Return ~self.

        Inverse rotation (backward rotation).

        """
        return self.copy(conversion.conjugate(self.quaternion,'scalar-first'))


    def __mul__(self: MyType,
                other: MyType) -> MyType:
        """
        Return self*other.

        Compose with other.

        Parameters
        ----------
        other : Rotation, shape broadcastable to self.shape
            Rotation for composition.

        Returns
        -------
        composition : Rotation
            Compound rotation self*other, i.e. first other then self rotation.

        """
        if isinstance(other,Rotation):
            return self.copy(Rotation(conversion.multiply(self.quaternion,other.quaternion,'scalar-first'))._standardize())
        else:
            raise TypeError(f'cannot compose Rotation with "{type(other)}"')


    def __truediv__(self: MyType,
                    other: MyType) -> MyType:
        """
        Return self/other.

        Compose with inverse of other.

        Returns
        -------
        composition : Rotation
            Compound rotation self*(~other), i.e. first inverse of other then self rotation.

        """
        if isinstance(other,Rotation):
            return self*~other
        else:
            raise TypeError(f'cannot compose Rotation with "{type(other)}"')


    def _standardize(self: MyType) -> MyType:
        """Standardize quaternion (ensure positive real hemisphere)."""
        self.quaternion[self.quaternion[...,0] < 0.] *= -1.
        return self


    ################################################################################################
    # convert to different orientation representations (numpy arrays)

    def as_quaternion(self,
                      layout: Optional[QuaternionLayout] = None) -> np.ndarray:
        """
        Represent as unit quaternion.

        Parameters
        ----------
        layout : {'scalar-first', 'vector-first'}, optional
            Quaternion layout. Defaults to the configured layout.

        Returns
        -------
        q : numpy.ndarray, shape (...,4)
            Unit quaternion in positive real hemisphere, i.e. ǀqǀ = 1, q_0 ≥ 0.

        """
        return conversion.to_layout(self.quaternion,'scalar-first',layout).copy()

    def as_Euler_angles(self,
                        degrees: bool = False) -> np.ndarray:
        """
        Represent as Bunge Euler angles.

        Parameters
        ----------
        degrees : bool, optional
            Return angles in degrees. Defaults to False.

        Returns
        -------
        phi : numpy.ndarray, shape (...,3)
            Bunge Euler angles (φ_1 ∈ [0,2π), ϕ ∈ [0,π], φ_2 ∈ [0,2π)).

        Examples
        --------
        >>> import crysrot
        >>> crysrot.Rotation([1,0,0,0]).as_Euler_angles()
        array([0., 0., 0.])

        """
        eu = conversion.qu2eu(self.quaternion,layout='scalar-first')
        return np.degrees(eu) if degrees else eu

    def as_axis_angle(self,
                      degrees: bool = False,
                      pair: bool = False) -> Union[Tuple[np.ndarray, np.ndarray], np.ndarray]:
        """
        Represent as axis–angle pair.

        Parameters
        ----------
        degrees : bool, optional
            Return rotation angle in degrees. Defaults to False.
        pair : bool, optional
            Return tuple of axis and angle. Defaults to False.

        Returns
        -------
        n_omega : numpy.ndarray, shape (...,4) or tuple ((...,3), (...)) if pair == True
            Axis and angle [n_1, n_2, n_3, ω] with ǀnǀ = 1 and ω ∈ [0,π].

        """
        ax = conversion.qu2ax(self.quaternion,layout='scalar-first')
        if degrees: ax[...,3] = np.degrees(ax[...,3])
        return (ax[...,:3],ax[...,3]) if pair else ax

    def as_matrix(self) -> np.ndarray:
        """
        Represent as rotation matrix.

        Returns
        -------
        R : numpy.ndarray, shape (...,3,3)
            Rotation matrix R with det(R) = 1, R.T ∙ R = I.

        """
        return conversion.qu2om(self.quaternion,layout='scalar-first')

    def as_Rodrigues_vector(self,
                            compact: bool = False) -> np.ndarray:
        """
        Represent as Rodrigues–Frank vector.

        Parameters
        ----------
        compact : bool, optional
            Return three-component Rodrigues–Frank vector,
            i.e. axis and angle argument are not separated.

        Returns
        -------
        rho : numpy.ndarray, shape (...,4) or (...,3) if compact == True
            Rodrigues–Frank vector [n_1, n_2, n_3, tan(ω/2)] with ǀnǀ = 1 and ω ∈ [0,π].

        """
        ro = conversion.qu2ro(self.quaternion,layout='scalar-first')
        if compact:
            with np.errstate(invalid='ignore'):
                return ro[...,:3]*ro[...,3:4]
        else:
            return ro

    def as_homochoric(self) -> np.ndarray:
        """Represent as homochoric vector."""
        return conversion.qu2ho(self.quaternion,layout='scalar-first')

    def as_cubochoric(self) -> np.ndarray:
        """Represent as cubochoric vector."""
        return conversion.qu2cu(self.quaternion,layout='scalar-first')

    ################################################################################################
    # Static constructors. The input data needs to follow the conventions, options allow to
    # relax the conventions.
    @staticmethod
    def from_quaternion(q: Union[Sequence[FloatSequence], np.ndarray],
                        accept_homomorph: bool = False,
                        normalize: bool = False,
                        layout: Optional[QuaternionLayout] = None) -> 'Rotation':
        """
        Initialize from quaternion.

        Parameters
        ----------
        q : numpy.ndarray, shape (...,4)
            Unit quaternion in positive real hemisphere, i.e. ǀqǀ = 1 and q_0 ≥ 0.
        accept_homomorph : bool, optional
            Allow homomorphic variants, i.e. q_0 < 0 (negative real hemisphere).
            Defaults to False.
        normalize: bool, optional
            Allow ǀqǀ ≠ 1. Defaults to False.
        layout : {'scalar-first', 'vector-first'}, optional
            Quaternion layout. Defaults to the configured layout.

        Returns
        -------
        new : crysrot.Rotation

        """
        qu = np.array(q,dtype=float)
        if qu.shape[-1:] != (4,): raise ValueError('invalid shape')
        qu = np.array(conversion.to_layout(qu,layout,'scalar-first'))

        if accept_homomorph:
            qu[qu[...,0]<0.] *= -1.
        if normalize:
            qu /= np.linalg.norm(qu,axis=-1,keepdims=True)

        _raise_if_invalid(checks.qu_check(qu,'scalar-first',tolerance=1.e-8))
        return Rotation(qu)

    @staticmethod
    def from_Euler_angles(phi: FloatSequence,
                          degrees: bool = False) -> 'Rotation':
        """
        Initialize from Bunge Euler angles.

        Parameters
        ----------
        phi : numpy.ndarray, shape (...,3)
            Euler angles (φ_1 ∈ [0,2π], ϕ ∈ [0,π], φ_2 ∈ [0,2π])
            or (φ_1 ∈ [0,360], ϕ ∈ [0,180], φ_2 ∈ [0,360]) if degrees == True.
        degrees : bool, optional
            Euler angles are given in degrees. Defaults to False.

        Returns
        -------
        new : crysrot.Rotation

        """
        eu = np.array(phi,dtype=float)
        if eu.shape[-1:] != (3,): raise ValueError('invalid shape')

        eu = np.radians(eu) if degrees else eu
        _raise_if_invalid(checks.eu_check(eu))

        return Rotation(conversion.eu2qu(eu,layout='scalar-first'))

    @staticmethod
    def from_axis_angle(n_omega: FloatSequence,
                        degrees: bool = False,
                        normalize: bool = False) -> 'Rotation':
        """
        Initialize from axis–angle pair.

        Parameters
        ----------
        n_omega : numpy.ndarray, shape (...,4)
            Axis and angle (n_1, n_2, n_3, ω) with ǀnǀ = 1 and ω ∈ [0,π]
            or ω ∈ [0,180] if degrees == True.
        degrees : bool, optional
            Angle ω is given in degrees. Defaults to False.
        normalize: bool, optional
            Allow ǀnǀ ≠ 1. Defaults to False.

        Returns
        -------
        new : crysrot.Rotation

        """
        ax = np.array(n_omega,dtype=float)
        if ax.shape[-1:] != (4,): raise ValueError('invalid shape')

        if degrees: ax[...,  3] = np.radians(ax[...,3])
        if normalize:
            ax[...,0:3] /= np.linalg.norm(ax[...,0:3],axis=-1,keepdims=True)

        _raise_if_invalid(checks.ax_check(ax,tolerance=1.e-6))
        return Rotation(conversion.ax2qu(ax,layout='scalar-first'))

    @staticmethod
    def from_matrix(R: FloatSequence) -> 'Rotation':
        """
        Initialize from rotation matrix.

        Parameters
        ----------
        R : numpy.ndarray, shape (...,3,3)
            Rotation matrix with det(R) = 1 and R.T ∙ R = I.

        Returns
        -------
        new : crysrot.Rotation

        """
        om = np.array(R,dtype=float)
        if om.shape[-2:] != (3,3): raise ValueError('invalid shape')

        _raise_if_invalid(checks.om_check(om))
        return Rotation(conversion.om2qu(om,layout='scalar-first'))

    @staticmethod
    def from_Rodrigues_vector(rho: FloatSequence,
                              normalize: bool = False) -> 'Rotation':
        """
        Initialize from Rodrigues–Frank vector (with angle separated from axis).

        Parameters
        ----------
        rho : numpy.ndarray, shape (...,4)
            Rodrigues–Frank vector (n_1, n_2, n_3, tan(ω/2)) with ǀnǀ = 1 and ω ∈ [0,π].
        normalize : bool, optional
            Allow ǀnǀ ≠ 1. Defaults to False.

        Returns
        -------
        new : crysrot.Rotation

        """
        ro = np.array(rho,dtype=float)
        if ro.shape[-1:] != (4,): raise ValueError('invalid shape')

        if normalize:
            ro[...,0:3] /= np.linalg.norm(ro[...,0:3],axis=-1,keepdims=True)

        _raise_if_invalid(checks.ro_check(ro))
        return Rotation(conversion.ro2qu(ro,layout='scalar-first'))

    @staticmethod
    def from_homochoric(h: FloatSequence) -> 'Rotation':
        """
        Initialize from homochoric vector.

        Parameters
        ----------
        h : numpy.ndarray, shape (...,3)
            Homochoric vector (h_1, h_2, h_3) with ǀhǀ < (3/4*π)^(1/3).

        Returns
        -------
        new : crysrot.Rotation

        """
        ho = np.array(h,dtype=float)
        if ho.shape[-1:] != (3,): raise ValueError('invalid shape')

        if np.any(np.linalg.norm(ho,axis=-1) > conversion.R1+1.e-9):
            raise ValueError('homochoric coordinate outside of the sphere')

        return Rotation(conversion.ho2qu(ho,layout='scalar-first'))

    @staticmethod
    def from_cubochoric(x: FloatSequence) -> 'Rotation':
        """
        Initialize from cubochoric vector.

        Parameters
        ----------
        x : numpy.ndarray, shape (...,3)
            Cubochoric vector (x_1, x_2, x_3) with max(ǀx_iǀ) < 1/2*π^(2/3).

        Returns
        -------
        new : crysrot.Rotation

        """
        cu = np.array(x,dtype=float)
        if cu.shape[-1:] != (3,): raise ValueError('invalid shape')
        if np.max(np.abs(cu),initial=0.) > conversion.cube_half_width+1.e-9:
            raise ValueError('cubochoric coordinate outside of the cube')

        return Rotation(conversion.cu2qu(cu,layout='scalar-first'))


    @staticmethod
    def from_random(shape: Union[None, int, IntSequence] = None,
                    rng_seed: Optional[NumpyRngSeed] = None) -> 'Rotation':
        """
        Initialize with samples from a uniform distribution.

        Parameters
        ----------
        shape : (sequence of) int, optional
            Shape of the returned array. Defaults to None, which gives a scalar.
        rng_seed : {None, int, array_like[ints], SeedSequence, BitGenerator, Generator}, optional
            A seed to initialize the BitGenerator.
            Defaults to None, i.e. unpredictable entropy will be pulled from the OS.

        Returns
        -------
        new : crysrot.Rotation

        """
        rng = np.random.default_rng(rng_seed)
        r = rng.random(3 if shape is None else tuple(shape)+(3,) if hasattr(shape, '__iter__') else (shape,3)) # type: ignore

        A = np.sqrt(r[...,2])
        B = np.sqrt(1.-r[...,2])
        q = np.stack([np.cos(2.*np.pi*r[...,0])*A,
                      np.sin(2.*np.pi*r[...,1])*B,
                      np.cos(2.*np.pi*r[...,1])*B,
                      np.sin(2.*np.pi*r[...,0])*A],axis=-1)

        return Rotation(q)._standardize()


def _raise_if_invalid(result: checks.CheckResult):
    """Raise ValueError with the first diagnostic message of a failed check."""
    code = np.asarray(result.code)
    if np.any(code != 1):
        msg = result.msg if isinstance(result.msg,str) else result.msg[int(np.argmax(code.ravel() != 1))]
        raise ValueError(msg)
