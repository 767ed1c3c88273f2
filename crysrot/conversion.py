"""
Conversion between rotation representations.

All functions operate on arrays of shape (...,n), where n is the number of
components of the respective representation (see 'components').
Orientation matrices can be given as (...,3,3) or row-major (...,9) and are
returned as (...,3,3).

The working precision follows the input: float32 input gives float32 output,
float64 input gives float64 output. Other input types are evaluated in float64.
Thresholds for the treatment of degenerate cases depend on the precision.

The following conventions apply:

- Coordinate frames are right-handed.
- A rotation angle ω is taken to be positive for a counterclockwise rotation
  when viewing from the end point of the rotation axis towards the origin.
- Rotations are interpreted in the passive sense.
- P = +1.
- Euler angles are Bunge (z-x-z) angles in radians.
- Quaternions have a non-negative real part. Their memory layout is
  either 'scalar-first' (w,x,y,z) or 'vector-first' (x,y,z,w).

References
----------
D. Rowenhorst et al., Modelling and Simulation in Materials Science and Engineering 23:083501, 2015
https://doi.org/10.1088/0965-0393/23/8/083501

"""

import functools
from typing import Optional, Callable, Literal

import numpy as np

from ._typehints import FloatSequence, Representation, QuaternionLayout
from ._config import config as _config


P = 1

representations = ('eu','om','qu','ax','ro','ho','cu')

components = {'eu': 3,
              'om': 9,
              'qu': 4,
              'ax': 4,
              'ro': 4,
              'ho': 3,
              'cu': 3}

names = {'eu': 'Euler',
         'om': 'Orientation Matrix',
         'qu': 'Quaternion',
         'ax': 'Axis-Angle',
         'ro': 'Rodrigues',
         'ho': 'Homochoric',
         'cu': 'Cubochoric'}

# parameters for conversion from/to cubochoric
_sc   = np.pi**(1./6.)/6.**(1./6.)
_beta = np.pi**(5./6.)/6.**(1./6.)/2.
_R1   = (3.*np.pi/4.)**(1./3.)

R1 = _R1
cube_half_width = np.pi**(2./3.)/2.

_layouts = ('scalar-first','vector-first')


def representation(label: str) -> Representation:
    """
    Get key of a representation.

    Parameters
    ----------
    label : str
        Key (e.g. 'eu') or name (e.g. 'Euler') of the representation.

    Returns
    -------
    key : str
        Two-letter key of the representation.

    """
    if label in representations: return label                                                       # type: ignore[return-value]
    for k,v in names.items():
        if label == v: return k                                                                     # type: ignore[return-value]
    raise KeyError(f'invalid representation "{label}", use one of {list(representations)} '
                   f'or {list(names.values())}')


def layout_or_default(layout: Optional[QuaternionLayout]) -> QuaternionLayout:
    """Return layout, defaulting to the configured quaternion layout."""
    l = _config['quaternion_layout'] if layout is None else layout
    if l not in _layouts:
        raise ValueError(f'invalid quaternion layout "{l}", use one of {list(_layouts)}')
    return l


def to_layout(qu: FloatSequence,
              source: Optional[QuaternionLayout],
              destination: Optional[QuaternionLayout]) -> np.ndarray:
    """
    Reorder quaternion components.

    Parameters
    ----------
    qu : numpy.ndarray, shape (...,4)
        Quaternions.
    source : {'scalar-first', 'vector-first'}
        Layout of the input.
    destination : {'scalar-first', 'vector-first'}
        Layout of the output.

    Returns
    -------
    qu : numpy.ndarray, shape (...,4)
        Quaternions in destination layout.

    """
    qu_ = np.asarray(qu)
    s,d = layout_or_default(source),layout_or_default(destination)
    if s == d:
        return qu_
    return qu_[...,[3,0,1,2]] if s == 'vector-first' else qu_[...,[1,2,3,0]]


def _as_float(a: FloatSequence) -> np.ndarray:
    a_ = np.asarray(a)
    return a_ if a_.dtype in (np.float32,np.float64) else a_.astype(np.float64)

def _tol(a: np.ndarray,
         single: float,
         double: float) -> float:
    return single if a.dtype == np.float32 else double

def _as_matrix(om: np.ndarray) -> np.ndarray:
    return om if om.shape[-2:] == (3,3) else om.reshape(om.shape[:-1]+(3,3))


def _working_precision(f: Callable) -> Callable:
    """Evaluate conversion in precision of the input and return result of the same type."""
    @functools.wraps(f)
    def wrapper(a, *args, **kwargs):
        a_ = _as_float(a)
        return np.asarray(f(a_,*args,**kwargs)).astype(a_.dtype,copy=False)
    return wrapper


def _wrap_Euler(eu: np.ndarray) -> np.ndarray:
    """Reduce Bunge Euler angles to φ1∈[0,2π), Φ∈[0,π], φ2∈[0,2π)."""
    thr = _tol(eu,1.e-6,1.e-10)
    phi = np.mod(eu[...,0::2],2.*np.pi)
    phi[np.logical_or(phi < thr,phi > 2.*np.pi-thr)] = 0.
    return np.stack([phi[...,0],np.clip(eu[...,1],0.,np.pi),phi[...,1]],axis=-1)


def multiply(q1: FloatSequence,
             q2: FloatSequence,
             layout: Optional[QuaternionLayout] = None) -> np.ndarray:
    """
    Hamilton product of two quaternions.

    The product q1*q2 corresponds to the rotation q2 followed by q1.

    Parameters
    ----------
    q1 : numpy.ndarray, shape (...,4)
        Left quaternion.
    q2 : numpy.ndarray, shape (...,4)
        Right quaternion.
    layout : {'scalar-first', 'vector-first'}, optional
        Quaternion layout of input and output.
        Defaults to the configured layout.

    Returns
    -------
    q : numpy.ndarray, shape (...,4)
        Product q1*q2.

    """
    a = to_layout(_as_float(q1),layout,'scalar-first')
    b = to_layout(_as_float(q2),layout,'scalar-first')
    w = a[...,0:1]*b[...,0:1] - np.sum(a[...,1:]*b[...,1:],axis=-1,keepdims=True)
    v = a[...,0:1]*b[...,1:] + b[...,0:1]*a[...,1:] + P*np.cross(a[...,1:],b[...,1:])
    return to_layout(np.block([w,v]),'scalar-first',layout)


def conjugate(qu: FloatSequence,
              layout: Optional[QuaternionLayout] = None) -> np.ndarray:
    """Quaternion conjugate (inverse rotation for unit quaternions)."""
    q = to_layout(_as_float(qu),layout,'scalar-first').copy()
    q[...,1:] *= -1.
    return to_layout(q,'scalar-first',layout)


####################################################################################################
# Code below available according to the following conditions on https://github.com/MarDiehl/3Drotations
####################################################################################################
# Copyright (c) 2017-2020, Martin Diehl/Max-Planck-Institut für Eisenforschung GmbH
# Copyright (c) 2013-2014, Marc De Graef/Carnegie Mellon University
# All rights reserved.
#
# Redistribution and use in source and binary forms, with or without modification, are
# permitted provided that the following conditions are met:
#
#     - Redistributions of source code must retain the above copyright notice, this list
#        of conditions and the following disclaimer.
#     - Redistributions in binary form must reproduce the above copyright notice, this
#        list of conditions and the following disclaimer in the documentation and/or
#        other materials provided with the distribution.
#     - Neither the names of Marc De Graef, Carnegie Mellon University nor the names
#        of its contributors may be used to endorse or promote products derived from
#        this software without specific prior written permission.
#
# THIS SOFTWARE IS PROVIDED BY THE COPYRIGHT HOLDERS AND CONTRIBUTORS "AS IS"
# AND ANY EXPRESS OR IMPLIED WARRANTIES, INCLUDING, BUT NOT LIMITED TO, THE
# IMPLIED WARRANTIES OF MERCHANTABILITY AND FITNESS FOR A PARTICULAR PURPOSE
# ARE DISCLAIMED. IN NO EVENT SHALL THE COPYRIGHT HOLDER OR CONTRIBUTORS BE
# LIABLE FOR ANY DIRECT, INDIRECT, INCIDENTAL, SPECIAL, EXEMPLARY, OR CONSEQUENTIAL
# DAMAGES (INCLUDING, BUT NOT LIMITED TO, PROCUREMENT OF SUBSTITUTE GOODS OR
# SERVICES; LOSS OF USE, DATA, OR PROFITS; OR BUSINESS INTERRUPTION) HOWEVER
# CAUSED AND ON ANY THEORY OF LIABILITY, WHETHER IN CONTRACT, STRICT LIABILITY,
# OR TORT (INCLUDING NEGLIGENCE OR OTHERWISE) ARISING IN ANY WAY OUT OF THE
# USE OF THIS SOFTWARE, EVEN IF ADVISED OF THE POSSIBILITY OF SUCH DAMAGE.
####################################################################################################
_identity_ax = np.array([0.,0.,1.,0.])
_identity_ro = np.array([0.,0.,P,0.])

#---------- Bunge Euler angles ----------
@_working_precision
def eu2om(eu: np.ndarray) -> np.ndarray:
    """Bunge Euler angles to rotation matrix."""
    c = np.cos(eu)
    s = np.sin(eu)
    om = np.block([+c[...,0:1]*c[...,2:3]-s[...,0:1]*s[...,2:3]*c[...,1:2],
                   +s[...,0:1]*c[...,2:3]+c[...,0:1]*s[...,2:3]*c[...,1:2],
                   +s[...,2:3]*s[...,1:2],
                   -c[...,0:1]*s[...,2:3]-s[...,0:1]*c[...,2:3]*c[...,1:2],
                   -s[...,0:1]*s[...,2:3]+c[...,0:1]*c[...,2:3]*c[...,1:2],
                   +c[...,2:3]*s[...,1:2],
                   +s[...,0:1]*s[...,1:2],
                   -c[...,0:1]*s[...,1:2],
                   +c[...,1:2]
                   ]).reshape(eu.shape[:-1]+(3,3))
    om[np.abs(om) < _tol(eu,1.e-7,1.e-12)] = 0.
    return om

@_working_precision
def eu2ax(eu: np.ndarray) -> np.ndarray:
    """Bunge Euler angles to axis–angle pair."""
    thr = _tol(eu,1.e-6,1.e-12)
    t = np.tan(eu[...,1:2]*0.5)
    sigma = 0.5*(eu[...,0:1]+eu[...,2:3])
    delta = 0.5*(eu[...,0:1]-eu[...,2:3])
    tau   = np.sqrt(t**2+np.sin(sigma)**2)
    with np.errstate(invalid='ignore',divide='ignore'):
        alpha = np.where(np.abs(np.cos(sigma)) < thr,np.pi,2.*np.arctan(tau/np.cos(sigma)))
        ax = np.block([-P/tau*t*np.cos(delta),
                       -P/tau*t*np.sin(delta),
                       -P/tau*  np.sin(sigma),
                        alpha
                      ])
    ax = np.where(alpha < 0.,-ax,ax)
    return np.where(np.abs(alpha) < thr,_identity_ax,ax)

@_working_precision
def eu2ro(eu: np.ndarray) -> np.ndarray:
    """Bunge Euler angles to Rodrigues–Frank vector."""
    ax = eu2ax(eu)
    with np.errstate(invalid='ignore'):
        ro = np.block([ax[...,:3],
                       np.where(ax[...,3:4] > np.pi-_tol(eu,1.e-6,1.e-10),np.inf,np.tan(ax[...,3:4]*.5))])
    return np.where(ax[...,3:4] == 0.,_identity_ro,ro)

@_working_precision
def eu2qu(eu: np.ndarray,
          layout: Optional[QuaternionLayout] = None) -> np.ndarray:
    """Bunge Euler angles to quaternion."""
    ee = 0.5*eu
    cPhi = np.cos(ee[...,1:2])
    sPhi = np.sin(ee[...,1:2])
    qu = np.block([    cPhi*np.cos(ee[...,0:1]+ee[...,2:3]),
                   -P*sPhi*np.cos(ee[...,0:1]-ee[...,2:3]),
                   -P*sPhi*np.sin(ee[...,0:1]-ee[...,2:3]),
                   -P*cPhi*np.sin(ee[...,0:1]+ee[...,2:3])])
    qu = np.where(qu[...,0:1] < 0.,-qu,qu)
    return to_layout(qu,'scalar-first',layout)

def eu2ho(eu: FloatSequence) -> np.ndarray:
    """Bunge Euler angles to homochoric vector."""
    return ax2ho(eu2ax(eu))

def eu2cu(eu: FloatSequence) -> np.ndarray:
    """Bunge Euler angles to cubochoric vector."""
    return ho2cu(eu2ho(eu))


#---------- Rotation matrix ----------
@_working_precision
def om2eu(om: np.ndarray) -> np.ndarray:
    """
    Rotation matrix to Bunge Euler angles.

    For Φ=0 and Φ=π (gimbal lock), φ2 is set to 0 and φ1
    carries the combined rotation about the z axis.
    """
    om = _as_matrix(om)
    gimbal = np.abs(om[...,2,2:3]) > 1.-_tol(om,1.e-6,1.e-10)
    with np.errstate(invalid='ignore',divide='ignore'):
        zeta = 1./np.sqrt(1.-om[...,2,2:3]**2)
        eu = np.where(gimbal,
                      np.block([np.where(om[...,2,2:3] > 0.,
                                         +np.arctan2(+om[...,0,1:2],om[...,0,0:1]),
                                         -np.arctan2(-om[...,0,1:2],om[...,0,0:1])),
                                np.where(om[...,2,2:3] > 0.,0.,np.pi),
                                np.zeros_like(om[...,2,2:3]),
                               ]),
                      np.block([np.arctan2(om[...,2,0:1]*zeta,-om[...,2,1:2]*zeta),
                                np.arccos(np.clip(om[...,2,2:3],-1.,1.)),
                                np.arctan2(om[...,0,2:3]*zeta,+om[...,1,2:3]*zeta)
                               ]))
    return _wrap_Euler(eu)

@_working_precision
def om2qu(om: np.ndarray,
          layout: Optional[QuaternionLayout] = None) -> np.ndarray:
    """
    Rotation matrix to quaternion.

    This formulation is from  www.euclideanspace.com/maths/geometry/rotations/conversions/matrixToQuaternion.
    The formulation by Rowenhorst et al. had issues.
    """
    om = _as_matrix(om)
    trace = om[...,0,0:1] + om[...,1,1:2] + om[...,2,2:3]

    with np.errstate(invalid='ignore',divide='ignore'):
        s = [
             0.5 / np.sqrt( 1. + trace),
             2.  * np.sqrt( 1. + om[...,0,0:1] - om[...,1,1:2] - om[...,2,2:3]),
             2.  * np.sqrt( 1. + om[...,1,1:2] - om[...,2,2:3] - om[...,0,0:1]),
             2.  * np.sqrt( 1. + om[...,2,2:3] - om[...,0,0:1] - om[...,1,1:2] )
            ]
        qu = np.where(trace>0,
                      np.block([0.25 / s[0],
                               (om[...,2,1:2] - om[...,1,2:3] ) * s[0],
                               (om[...,0,2:3] - om[...,2,0:1] ) * s[0],
                               (om[...,1,0:1] - om[...,0,1:2] ) * s[0]]),
                      np.where(om[...,0,0:1] > np.maximum(om[...,1,1:2],om[...,2,2:3]),
                               np.block([(om[...,2,1:2] - om[...,1,2:3]) / s[1],
                                         0.25 * s[1],
                                         (om[...,0,1:2] + om[...,1,0:1]) / s[1],
                                         (om[...,0,2:3] + om[...,2,0:1]) / s[1]]),
                               np.where(om[...,1,1:2] > om[...,2,2:3],
                                        np.block([(om[...,0,2:3] - om[...,2,0:1]) / s[2],
                                                  (om[...,0,1:2] + om[...,1,0:1]) / s[2],
                                                  0.25 * s[2],
                                                  (om[...,1,2:3] + om[...,2,1:2]) / s[2]]),
                                        np.block([(om[...,1,0:1] - om[...,0,1:2]) / s[3],
                                                  (om[...,0,2:3] + om[...,2,0:1]) / s[3],
                                                  (om[...,1,2:3] + om[...,2,1:2]) / s[3],
                                                  0.25 * s[3]]),
                                       )
                              )
                     )*np.array([1.,P,P,P])
    qu = np.where(qu[...,0:1] < 0.,-qu,qu)
    return to_layout(qu,'scalar-first',layout)

def om2ax(om: FloatSequence) -> np.ndarray:
    """Rotation matrix to axis–angle pair."""
    return qu2ax(om2qu(om,layout='scalar-first'),layout='scalar-first')

def om2ro(om: FloatSequence) -> np.ndarray:
    """Rotation matrix to Rodrigues–Frank vector."""
    return eu2ro(om2eu(om))

def om2ho(om: FloatSequence) -> np.ndarray:
    """Rotation matrix to homochoric vector."""
    return ax2ho(om2ax(om))

def om2cu(om: FloatSequence) -> np.ndarray:
    """Rotation matrix to cubochoric vector."""
    return ho2cu(om2ho(om))


#---------- Axis angle pair ----------
@_working_precision
def ax2om(ax: np.ndarray) -> np.ndarray:
    """Axis-angle pair to rotation matrix."""
    c = np.cos(ax[...,3:4])
    s = np.sin(ax[...,3:4])
    omc = 1.-c
    om = np.block([c+omc*ax[...,0:1]**2,
                     omc*ax[...,0:1]*ax[...,1:2] + s*ax[...,2:3],
                     omc*ax[...,0:1]*ax[...,2:3] - s*ax[...,1:2],
                     omc*ax[...,0:1]*ax[...,1:2] - s*ax[...,2:3],
                   c+omc*ax[...,1:2]**2,
                     omc*ax[...,1:2]*ax[...,2:3] + s*ax[...,0:1],
                     omc*ax[...,0:1]*ax[...,2:3] + s*ax[...,1:2],
                     omc*ax[...,1:2]*ax[...,2:3] - s*ax[...,0:1],
                   c+omc*ax[...,2:3]**2]).reshape(ax.shape[:-1]+(3,3))
    return om if P < 0. else np.swapaxes(om,-1,-2)

@_working_precision
def ax2qu(ax: np.ndarray,
          layout: Optional[QuaternionLayout] = None) -> np.ndarray:
    """Axis–angle pair to quaternion."""
    c = np.cos(ax[...,3:4]*.5)
    s = np.sin(ax[...,3:4]*.5)
    qu = np.where(np.abs(ax[...,3:4]) < _tol(ax,1.e-6,1.e-12),[1.,0.,0.,0.],np.block([c,ax[...,:3]*s]))
    qu = np.where(qu[...,0:1] < 0.,-qu,qu)
    return to_layout(qu,'scalar-first',layout)

@_working_precision
def ax2ro(ax: np.ndarray) -> np.ndarray:
    """Axis–angle pair to Rodrigues–Frank vector."""
    ro = np.block([ax[...,:3],
                   np.where(np.abs(ax[...,3:4]-np.pi) < _tol(ax,1.e-6,1.e-7),
                            np.inf,
                            np.tan(ax[...,3:4]*0.5))
                  ])
    return np.where(np.abs(ax[...,3:4]) < _tol(ax,1.e-6,1.e-12),_identity_ro,ro)

@_working_precision
def ax2ho(ax: np.ndarray) -> np.ndarray:
    """Axis–angle pair to homochoric vector."""
    f = np.cbrt(0.75 * ( ax[...,3:4] - np.sin(ax[...,3:4]) ))
    return ax[...,:3] * f

def ax2eu(ax: FloatSequence) -> np.ndarray:
    """Axis–angle pair to Bunge Euler angles."""
    return om2eu(ax2om(ax))

def ax2cu(ax: FloatSequence) -> np.ndarray:
    """Axis–angle pair to cubochoric vector."""
    return ho2cu(ax2ho(ax))


#---------- Quaternion ----------
@_working_precision
def qu2om(qu: np.ndarray,
          layout: Optional[QuaternionLayout] = None) -> np.ndarray:
    """Quaternion to rotation matrix."""
    qu = to_layout(qu,layout,'scalar-first')
    qq = qu[...,0:1]**2-(qu[...,1:2]**2 + qu[...,2:3]**2 + qu[...,3:4]**2)
    om = np.block([qq + 2.*qu[...,1:2]**2,
                   2.*(qu[...,2:3]*qu[...,1:2]-P*qu[...,0:1]*qu[...,3:4]),
                   2.*(qu[...,3:4]*qu[...,1:2]+P*qu[...,0:1]*qu[...,2:3]),
                   2.*(qu[...,1:2]*qu[...,2:3]+P*qu[...,0:1]*qu[...,3:4]),
                   qq + 2.*qu[...,2:3]**2,
                   2.*(qu[...,3:4]*qu[...,2:3]-P*qu[...,0:1]*qu[...,1:2]),
                   2.*(qu[...,1:2]*qu[...,3:4]-P*qu[...,0:1]*qu[...,2:3]),
                   2.*(qu[...,2:3]*qu[...,3:4]+P*qu[...,0:1]*qu[...,1:2]),
                   qq + 2.*qu[...,3:4]**2,
                  ]).reshape(qu.shape[:-1]+(3,3))
    return om

@_working_precision
def qu2eu(qu: np.ndarray,
          layout: Optional[QuaternionLayout] = None) -> np.ndarray:
    """
    Quaternion to Bunge Euler angles.

    For Φ=0 and Φ=π (gimbal lock), φ2 is set to 0 and φ1
    carries the combined rotation about the z axis.
    """
    qu = to_layout(qu,layout,'scalar-first')
    w,x,y,z = (qu[...,i:i+1] for i in range(4))
    q03 = w**2+z**2
    q12 = x**2+y**2
    chi = np.sqrt(q03*q12)
    gimbal = np.abs(q03-q12) > 1.-_tol(qu,1.e-6,1.e-10)
    zero = np.zeros_like(chi)
    with np.errstate(invalid='ignore',divide='ignore'):
        eu = np.where(gimbal,
                      np.where(q12 < q03,
                               np.block([np.arctan2(-2.*P*w*z,w**2-z**2),zero,zero]),
                               np.block([np.arctan2(2.*x*y,x**2-y**2),zero+np.pi,zero])),
                      np.block([np.arctan2((-P*w*y+x*z)/chi,(-P*w*x-y*z)/chi),
                                np.arctan2(2.*chi,q03-q12),
                                np.arctan2((+P*w*y+x*z)/chi,(-P*w*x+y*z)/chi)]))
    return _wrap_Euler(eu)

@_working_precision
def qu2ax(qu: np.ndarray,
          layout: Optional[QuaternionLayout] = None) -> np.ndarray:
    """Quaternion to axis–angle pair."""
    qu = to_layout(qu,layout,'scalar-first')
    qu = np.where(qu[...,0:1] < 0.,-qu,qu)
    s = np.linalg.norm(qu[...,1:4],axis=-1,keepdims=True)
    omega = 2. * np.arccos(np.clip(qu[...,0:1],-1.,1.))
    with np.errstate(invalid='ignore',divide='ignore'):
        ax = np.block([qu[...,1:4]/s,omega])
    return np.where(np.logical_or(omega < _tol(qu,1.e-6,1.e-12),s == 0.),_identity_ax,ax)

@_working_precision
def qu2ro(qu: np.ndarray,
          layout: Optional[QuaternionLayout] = None) -> np.ndarray:
    """Quaternion to Rodrigues–Frank vector."""
    qu = to_layout(qu,layout,'scalar-first')
    qu = np.where(qu[...,0:1] < 0.,-qu,qu)
    thr = _tol(qu,1.e-6,1.e-8)
    s = np.linalg.norm(qu[...,1:4],axis=-1,keepdims=True)
    with np.errstate(invalid='ignore',divide='ignore'):
        ro = np.where(qu[...,0:1] < thr,
                      np.block([qu[...,1:4]/s,np.full_like(s,np.inf)]),
                      np.block([qu[...,1:4]/s,np.tan(np.arccos(np.clip(qu[...,0:1],-1.,1.)))]))
    return np.where(s < thr,_identity_ro,ro)

@_working_precision
def qu2ho(qu: np.ndarray,
          layout: Optional[QuaternionLayout] = None) -> np.ndarray:
    """Quaternion to homochoric vector."""
    qu = to_layout(qu,layout,'scalar-first')
    qu = np.where(qu[...,0:1] < 0.,-qu,qu)
    s = np.linalg.norm(qu[...,1:4],axis=-1,keepdims=True)
    omega = 2. * np.arccos(np.clip(qu[...,0:1],-1.,1.))
    with np.errstate(invalid='ignore',divide='ignore'):
        ho = qu[...,1:4]/s * np.cbrt(0.75*(omega - np.sin(omega)))
    return np.where(s == 0.,0.,ho)

def qu2cu(qu: FloatSequence,
          layout: Optional[QuaternionLayout] = None) -> np.ndarray:
    """Quaternion to cubochoric vector."""
    return ho2cu(qu2ho(qu,layout=layout))


#---------- Rodrigues-Frank vector ----------
@_working_precision
def ro2ax(ro: np.ndarray) -> np.ndarray:
    """Rodrigues–Frank vector to axis–angle pair."""
    n = np.linalg.norm(ro[...,0:3],axis=-1,keepdims=True)
    with np.errstate(invalid='ignore',divide='ignore'):
        ax = np.where(np.isfinite(ro[...,3:4]),
                      np.block([ro[...,0:3]/n,2.*np.arctan(ro[...,3:4])]),
                      np.block([ro[...,0:3]/n,np.full_like(n,np.pi)]))
    return np.where(np.logical_or(np.abs(ro[...,3:4]) < _tol(ro,1.e-6,1.e-8),n == 0.),_identity_ax,ax)

@_working_precision
def ro2ho(ro: np.ndarray) -> np.ndarray:
    """Rodrigues–Frank vector to homochoric vector."""
    omega = np.where(np.isfinite(ro[...,3:4]),2.*np.arctan(ro[...,3:4]),np.pi)
    return ro[...,0:3] * np.cbrt(0.75*(omega - np.sin(omega)))

def ro2om(ro: FloatSequence) -> np.ndarray:
    """Rodrigues–Frank vector to rotation matrix."""
    return ax2om(ro2ax(ro))

def ro2eu(ro: FloatSequence) -> np.ndarray:
    """Rodrigues–Frank vector to Bunge Euler angles."""
    return om2eu(ro2om(ro))

def ro2qu(ro: FloatSequence,
          layout: Optional[QuaternionLayout] = None) -> np.ndarray:
    """Rodrigues–Frank vector to quaternion."""
    return ax2qu(ro2ax(ro),layout=layout)

def ro2cu(ro: FloatSequence) -> np.ndarray:
    """Rodrigues–Frank vector to cubochoric vector."""
    return ho2cu(ro2ho(ro))


#---------- Homochoric vector----------
@_working_precision
def ho2ax(ho: np.ndarray) -> np.ndarray:
    """Homochoric vector to axis–angle pair."""
    tfit = np.array([+0.9999999999999968,     -0.49999999999986866,     -0.025000000000632055,
                     -0.003928571496460683,   -0.0008164666077062752,   -0.00019411896443261646,
                     -0.00004985822229871769, -0.000014164962366386031, -1.9000248160936107e-6,
                     -5.72184549898506e-6,    +7.772149920658778e-6,    -0.00001053483452909705,
                     +9.528014229335313e-6,   -5.660288876265125e-6,    +1.2844901692764126e-6,
                     +1.1255185726258763e-6,  -1.3834391419956455e-6,   +7.513691751164847e-7,
                     -2.401996891720091e-7,   +4.386887017466388e-8,    -3.5917775353564864e-9])
    hmag_squared = np.sum(ho**2,axis=-1,keepdims=True)
    s = np.sum(tfit*hmag_squared**np.arange(len(tfit)),axis=-1,keepdims=True)
    omega = 2.*np.arccos(np.clip(s,-1.,1.))
    omega = np.where(np.abs(omega-np.pi) < _tol(ho,1.e-6,1.e-8),np.pi,omega)
    with np.errstate(invalid='ignore',divide='ignore'):
        ax = np.block([ho/np.sqrt(hmag_squared),omega])
    return np.where(hmag_squared < _tol(ho,1.e-12,1.e-24),_identity_ax,ax)

@_working_precision
def ho2cu(ho: np.ndarray) -> np.ndarray:
    """
    Homochoric vector to cubochoric vector.

    References
    ----------
    D. Roşca et al., Modelling and Simulation in Materials Science and Engineering 22:075013, 2014
    https://doi.org/10.1088/0965-0393/22/7/075013

    """
    rs = np.linalg.norm(ho,axis=-1,keepdims=True)

    xyz3 = np.take_along_axis(ho,_get_pyramid_order(ho,'forward'),-1)

    with np.errstate(invalid='ignore',divide='ignore'):
        # inverse M_3
        xyz2 = xyz3[...,0:2] * np.sqrt( 2.*rs/(rs+np.abs(xyz3[...,2:3])) )
        qxy = np.sum(xyz2**2,axis=-1,keepdims=True)

        q2 = qxy + np.max(np.abs(xyz2),axis=-1,keepdims=True)**2
        sq2 = np.sqrt(q2)
        q = (_beta/np.sqrt(2.)/_R1) * np.sqrt(q2*qxy/(q2-np.max(np.abs(xyz2),axis=-1,keepdims=True)*sq2))
        tt = np.clip((np.min(np.abs(xyz2),axis=-1,keepdims=True)**2\
            +np.max(np.abs(xyz2),axis=-1,keepdims=True)*sq2)/np.sqrt(2.)/qxy,-1.,1.)
        T_inv = np.where(np.abs(xyz2[...,1:2]) <= np.abs(xyz2[...,0:1]),
                            np.block([np.ones_like(tt),np.arccos(tt)/np.pi*12.]),
                            np.block([np.arccos(tt)/np.pi*12.,np.ones_like(tt)]))*q
        T_inv[xyz2<0.] *= -1.
        T_inv[np.broadcast_to(np.isclose(qxy,0.,rtol=0.,atol=1.e-12),T_inv.shape)] = 0.
        cu = np.block([T_inv, np.where(xyz3[...,2:3]<0.,-np.ones_like(xyz3[...,2:3]),np.ones_like(xyz3[...,2:3])) \
                              * rs/np.sqrt(6./np.pi),
                      ])/ _sc

    cu[np.isclose(np.sum(np.abs(ho),axis=-1),0.,rtol=0.,atol=1.e-16)] = 0.
    return np.take_along_axis(cu,_get_pyramid_order(ho,'backward'),-1)

def ho2eu(ho: FloatSequence) -> np.ndarray:
    """Homochoric vector to Bunge Euler angles."""
    return ax2eu(ho2ax(ho))

def ho2om(ho: FloatSequence) -> np.ndarray:
    """Homochoric vector to rotation matrix."""
    return ax2om(ho2ax(ho))

def ho2ro(ho: FloatSequence) -> np.ndarray:
    """Homochoric vector to Rodrigues–Frank vector."""
    return ax2ro(ho2ax(ho))

def ho2qu(ho: FloatSequence,
          layout: Optional[QuaternionLayout] = None) -> np.ndarray:
    """Homochoric vector to quaternion."""
    return ax2qu(ho2ax(ho),layout=layout)


#---------- Cubochoric ----------
@_working_precision
def cu2ho(cu: np.ndarray) -> np.ndarray:
    """
    Cubochoric vector to homochoric vector.

    References
    ----------
    D. Roşca et al., Modelling and Simulation in Materials Science and Engineering 22:075013, 2014
    https://doi.org/10.1088/0965-0393/22/7/075013

    """
    with np.errstate(invalid='ignore',divide='ignore'):
        # get pyramid and scale by grid parameter ratio
        XYZ = np.take_along_axis(cu,_get_pyramid_order(cu,'forward'),-1) * _sc
        order = np.abs(XYZ[...,1:2]) <= np.abs(XYZ[...,0:1])
        q = np.pi/12. * np.where(order,XYZ[...,1:2],XYZ[...,0:1]) \
                       / np.where(order,XYZ[...,0:1],XYZ[...,1:2])
        c = np.cos(q)
        s = np.sin(q)
        q = _R1*2.**0.25/_beta/ np.sqrt(np.sqrt(2.)-c) \
          * np.where(order,XYZ[...,0:1],XYZ[...,1:2])

        T = np.block([(np.sqrt(2.)*c - 1.), np.sqrt(2.) * s]) * q

        # transform to sphere grid (inverse Lambert)
        c = np.sum(T**2,axis=-1,keepdims=True)
        s = c *         np.pi/24. /XYZ[...,2:3]**2
        c = c * np.sqrt(np.pi/24.)/XYZ[...,2:3]
        q = np.sqrt( 1. - s)

        ho = np.where(np.isclose(np.sum(np.abs(XYZ[...,0:2]),axis=-1,keepdims=True),0.,rtol=0.,atol=1.e-16),
                      np.block([np.zeros_like(XYZ[...,0:2]),np.sqrt(6./np.pi)*XYZ[...,2:3]]),
                      np.block([np.where(order,T[...,0:1],T[...,1:2])*q,
                                np.where(order,T[...,1:2],T[...,0:1])*q,
                                np.sqrt(6./np.pi) * XYZ[...,2:3] - c])
                      )

    ho[np.isclose(np.sum(np.abs(cu),axis=-1),0.,rtol=0.,atol=1.e-16)] = 0.
    return np.take_along_axis(ho,_get_pyramid_order(cu,'backward'),-1)

def cu2eu(cu: FloatSequence) -> np.ndarray:
    """Cubochoric vector to Bunge Euler angles."""
    return ho2eu(cu2ho(cu))

def cu2om(cu: FloatSequence) -> np.ndarray:
    """Cubochoric vector to rotation matrix."""
    return ho2om(cu2ho(cu))

def cu2qu(cu: FloatSequence,
          layout: Optional[QuaternionLayout] = None) -> np.ndarray:
    """Cubochoric vector to quaternion."""
    return ho2qu(cu2ho(cu),layout=layout)

def cu2ax(cu: FloatSequence) -> np.ndarray:
    """Cubochoric vector to axis–angle pair."""
    return ho2ax(cu2ho(cu))

def cu2ro(cu: FloatSequence) -> np.ndarray:
    """Cubochoric vector to Rodrigues–Frank vector."""
    return ho2ro(cu2ho(cu))


def _get_pyramid_order(xyz: np.ndarray,
                       direction: Literal['forward', 'backward']) -> np.ndarray:
    """
    Get order of the coordinates.

    Depending on the pyramid in which the point is located, the order need to be adjusted.

    Parameters
    ----------
    xyz : numpy.ndarray
       Coordinates of a point on a uniform refinable grid on a ball or
       in a uniform refinable cubical grid.

    References
    ----------
    D. Roşca et al., Modelling and Simulation in Materials Science and Engineering 22:075013, 2014
    https://doi.org/10.1088/0965-0393/22/7/075013

    """
    order = {'forward': np.array([[0,1,2],[1,2,0],[2,0,1]]),
             'backward':np.array([[0,1,2],[2,0,1],[1,2,0]])}

    p = np.where(np.maximum(np.abs(xyz[...,0]),np.abs(xyz[...,1])) <= np.abs(xyz[...,2]),0,
                 np.where(np.maximum(np.abs(xyz[...,1]),np.abs(xyz[...,2])) <= np.abs(xyz[...,0]),1,2))

    return order[direction][p]


####################################################################################################
# Dispatch
####################################################################################################
def _copy(a: FloatSequence,
          layout: Optional[QuaternionLayout] = None) -> np.ndarray:
    return np.array(_as_float(a))


def get(source: str,
        destination: str) -> Callable[..., np.ndarray]:
    """
    Get conversion function for a pair of representations.

    Parameters
    ----------
    source : str
        Key or name of the input representation.
    destination : str
        Key or name of the output representation.

    Returns
    -------
    conversion : callable
        Function converting an array of the source representation
        into an array of the destination representation.
        Conversions from or to quaternions accept the keyword 'layout'.

    Examples
    --------
    >>> from crysrot import conversion
    >>> conversion.get('Euler','Rodrigues')([0.,0.,0.])
    array([0., 0., 1., 0.])

    """
    s,d = representation(source),representation(destination)
    return _copy if s == d else globals()[f'{s}2{d}']


def convert(a: FloatSequence,
            source: str,
            destination: str,
            layout: Optional[QuaternionLayout] = None) -> np.ndarray:
    """
    Convert between two representations.

    Parameters
    ----------
    a : numpy.ndarray, shape (...,n)
        Rotations in source representation.
    source : str
        Key or name of the input representation.
    destination : str
        Key or name of the output representation.
    layout : {'scalar-first', 'vector-first'}, optional
        Quaternion layout, only relevant if source or destination
        is 'qu'. Defaults to the configured layout.

    Returns
    -------
    b : numpy.ndarray, shape (...,m)
        Rotations in destination representation.

    """
    s,d = representation(source),representation(destination)
    f = get(s,d)
    return f(a,layout=layout) if 'qu' in (s,d) else f(a)
