"""
Validity checks of rotation representations.

The checks never raise on geometric data. They return a
'CheckResult' with code 1 for valid data and a negative
code together with a diagnostic message otherwise.
For a single tuple, 'code' is an int and 'msg' a str.
For an array of tuples, 'code' is an int array and 'msg' a list of str.
"""

from typing import NamedTuple, Optional, Union

import numpy as np

from ._typehints import FloatSequence, QuaternionLayout
from . import conversion


class CheckResult(NamedTuple):
    code: Union[int, np.ndarray]
    msg: Union[str, list[str]]


_messages = {
    'eu': {-1: 'rotations:eu_check:: phi1 Euler angle outside of valid range [0,2pi]',
           -2: 'rotations:eu_check:: Phi Euler angle outside of valid range [0,pi]',
           -3: 'rotations:eu_check:: phi2 Euler angle outside of valid range [0,2pi]'},
    'ro': {-1: 'rotations:ro_check:: Rodrigues-Frank vector has negative length',
           -2: 'rotations:ro_check:: Rodrigues-Frank axis vector not normalized'},
    'ho': {-1: 'rotations:ho_check: homochoric vector outside homochoric ball'},
    'cu': {-1: 'rotations:cu_check: cubochoric vector outside cube'},
    'qu': {-1: 'rotations:qu_check: quaternion must have positive scalar part',
           -2: 'rotations:qu_check: quaternion must have unit norm'},
    'ax': {-1: 'rotations:ax_check: angle must be in range [0,pi]',
           -2: 'rotations:ax_check: axis-angle axis vector must have unit norm'},
}


def _as_float(a: FloatSequence) -> np.ndarray:
    a_ = np.asarray(a)
    return a_ if a_.dtype in (np.float32,np.float64) else a_.astype(np.float64)

def _eps(a: np.ndarray,
         tolerance: Optional[float]) -> float:
    return float(np.finfo(a.dtype).eps) if tolerance is None else tolerance

def _result(code: np.ndarray,
            messages: dict[int, str]) -> CheckResult:
    """Attach messages to codes; scalar result for a single tuple."""
    if code.ndim == 0:
        return CheckResult(int(code),messages.get(int(code),''))
    return CheckResult(code,[messages.get(c,'') for c in code.ravel().tolist()])


def eu_check(eu: FloatSequence) -> CheckResult:
    """
    Check Bunge Euler angles.

    Parameters
    ----------
    eu : numpy.ndarray, shape (...,3)
        Bunge Euler angles (φ1,Φ,φ2) in radians.

    Returns
    -------
    result : crysrot.checks.CheckResult
        -1: φ1 ∉ [0,2π], -2: Φ ∉ [0,π], -3: φ2 ∉ [0,2π].
        If more than one test fails, the last one is reported.
    """
    eu_ = _as_float(eu)
    pi = eu_.dtype.type(np.pi)
    outside = lambda x,upper: np.logical_or(x < 0.,x > upper)                                       # noqa
    code = np.where(outside(eu_[...,2],2*pi),-3,
                    np.where(outside(eu_[...,1],pi),-2,
                             np.where(outside(eu_[...,0],2*pi),-1,1)))
    return _result(code,_messages['eu'])


def om_check(om: FloatSequence) -> CheckResult:
    """
    Check rotation matrices.

    Parameters
    ----------
    om : numpy.ndarray, shape (...,3,3) or (...,9)
        Rotation matrices.

    Returns
    -------
    result : crysrot.checks.CheckResult
        -1: negative determinant, -2: determinant not unity,
        -3: M·Mᵀ deviates from the identity matrix.

    Notes
    -----
    All nine entries of |I - |M·Mᵀ|| are compared to the threshold of 1e-5.
    The message for code -3 names the last deviating entry (row, column).
    """
    om_ = _as_float(om)
    om_ = om_ if om_.shape[-2:] == (3,3) else om_.reshape(om_.shape[:-1]+(3,3))
    thr = 1.e-5

    det = np.linalg.det(om_)
    abv = np.abs(np.einsum('...ij,...kj',om_,om_))
    deviation = np.abs(np.eye(3)-abv)

    code = np.where(det < 0.,-1,
                    np.where(np.abs(det-1.) > thr,-2,
                             np.where(np.any(deviation > thr,axis=(-2,-1)),-3,1)))

    det_,abv_,deviation_ = det.reshape(-1),abv.reshape(-1,3,3),deviation.reshape(-1,3,3)
    msg = []
    for i,c_ in enumerate(code.reshape(-1).tolist()):
        match c_:
            case -1:
                msg.append(f'rotations:om_check: Determinant of rotation matrix must be positive: {det_[i]}')
            case -2:
                msg.append(f'rotations:om_check: Determinant ({det_[i]}) of rotation matrix must be unity (1.0)')
            case -3:
                r,c = [(r,c) for c in range(3) for r in range(3) if deviation_[i,r,c] > thr][-1]
                msg.append('rotations:om_check: rotation matrix times transpose must be identity matrix: '
                           f'({r}, {c}) = {abv_[i,r,c]}')
            case _:
                msg.append('')

    return CheckResult(int(code),msg[0]) if code.ndim == 0 else CheckResult(code,msg)


def qu_check(qu: FloatSequence,
             layout: Optional[QuaternionLayout] = None,
             tolerance: Optional[float] = None) -> CheckResult:
    """
    Check quaternions.

    Parameters
    ----------
    qu : numpy.ndarray, shape (...,4)
        Quaternions.
    layout : {'scalar-first', 'vector-first'}, optional
        Quaternion layout. Defaults to the configured layout.
    tolerance : float, optional
        Allowed deviation of the norm from unity.
        Defaults to machine epsilon of the input precision.

    Returns
    -------
    result : crysrot.checks.CheckResult
        -1: negative scalar part, -2: norm not unity.
    """
    qu_ = conversion.to_layout(_as_float(qu),layout,'scalar-first')
    code = np.where(qu_[...,0] < 0.,-1,
                    np.where(np.abs(np.linalg.norm(qu_,axis=-1)-1.) > _eps(qu_,tolerance),-2,1))
    return _result(code,_messages['qu'])


def ax_check(ax: FloatSequence,
             tolerance: Optional[float] = None) -> CheckResult:
    """
    Check axis–angle pairs.

    Parameters
    ----------
    ax : numpy.ndarray, shape (...,4)
        Axis–angle pairs.
    tolerance : float, optional
        Allowed deviation of the axis norm from unity.
        Defaults to machine epsilon of the input precision.

    Returns
    -------
    result : crysrot.checks.CheckResult
        -1: angle ∉ [0,π], -2: axis norm not unity.
    """
    ax_ = _as_float(ax)
    code = np.where(np.logical_or(ax_[...,3] < 0.,ax_[...,3] > ax_.dtype.type(np.pi)),-1,
                    np.where(np.abs(np.linalg.norm(ax_[...,:3],axis=-1)-1.) > _eps(ax_,tolerance),-2,1))
    return _result(code,_messages['ax'])


def ro_check(ro: FloatSequence) -> CheckResult:
    """Check Rodrigues–Frank vectors (-1: negative length, -2: axis not normalized)."""
    ro_ = _as_float(ro)
    code = np.where(ro_[...,3] < 0.,-1,
                    np.where(np.abs(np.linalg.norm(ro_[...,:3],axis=-1)-1.) > 1.e-6,-2,1))
    return _result(code,_messages['ro'])


def ho_check(ho: FloatSequence) -> CheckResult:
    """Check homochoric vectors (-1: outside of homochoric ball)."""
    ho_ = _as_float(ho)
    code = np.where(np.linalg.norm(ho_,axis=-1) > conversion.R1,-1,1)
    return _result(code,_messages['ho'])


def cu_check(cu: FloatSequence) -> CheckResult:
    """Check cubochoric vectors (-1: outside of cube)."""
    cu_ = _as_float(cu)
    code = np.where(np.any(np.abs(cu_) > conversion.cube_half_width,axis=-1),-1,1)
    return _result(code,_messages['cu'])


def check(a: FloatSequence,
          representation: str,
          layout: Optional[QuaternionLayout] = None,
          tolerance: Optional[float] = None) -> CheckResult:
    """
    Check validity of a representation.

    Parameters
    ----------
    a : numpy.ndarray, shape (...,n)
        Data to check.
    representation : str
        Key or name of the representation.
    layout : {'scalar-first', 'vector-first'}, optional
        Quaternion layout, only relevant for quaternions.
        Defaults to the configured layout.
    tolerance : float, optional
        Allowed deviation of quaternion and axis norms from unity.
        Defaults to machine epsilon of the input precision.

    Returns
    -------
    result : crysrot.checks.CheckResult
        Code and message.

    Examples
    --------
    >>> from crysrot import checks
    >>> checks.check([0.,4.,0.],'Euler')
    CheckResult(code=-2, msg='rotations:eu_check:: Phi Euler angle outside of valid range [0,pi]')

    """
    match conversion.representation(representation):
        case 'eu': return eu_check(a)
        case 'om': return om_check(a)
        case 'qu': return qu_check(a,layout,tolerance)
        case 'ax': return ax_check(a,tolerance)
        case 'ro': return ro_check(a)
        case 'ho': return ho_check(a)
        case 'cu': return cu_check(a)
    raise KeyError(representation)                                                                  # pragma: no cover
