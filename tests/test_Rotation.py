import pytest
import numpy as np

from crysrot import Rotation
from crysrot import conversion

n = 1000
atol=1.e-4


@pytest.fixture
def set_of_rotations(set_of_quaternions):
    return [Rotation.from_quaternion(s) for s in set_of_quaternions]


class TestRotation:

    def test_invalid_init(self):
        with pytest.raises(TypeError):
            Rotation(np.ones(3))

    def test_to_numpy(self,np_rng):
        r = Rotation.from_random(np_rng.integers(1,10,4))
        assert np.all(r.as_quaternion() == np.array(r))

    def test_array_interface(self,set_of_quaternions):
        r = Rotation.from_quaternion(set_of_quaternions)
        assert np.array_equal(np.asarray(r),r.quaternion)

    @pytest.mark.parametrize('dtype',[np.float32,np.float64])
    def test_array_interface_dtype(self,set_of_quaternions,dtype):
        r = Rotation.from_quaternion(set_of_quaternions)
        a = np.asarray(r,dtype=dtype)
        assert a.dtype == dtype and np.allclose(a,r.quaternion,atol=1.e-7)

    def test_array_interface_copy(self,set_of_quaternions):
        r = Rotation.from_quaternion(set_of_quaternions)
        a = np.array(r,copy=True)
        a[...] = 0.
        assert not np.any(np.all(r.quaternion == 0.,axis=-1))

    @pytest.mark.parametrize('degrees',[True,False])
    def test_Eulers(self,set_of_rotations,degrees):
        for rot in set_of_rotations:
            m = rot.as_quaternion()
            o = Rotation.from_Euler_angles(rot.as_Euler_angles(degrees),degrees).as_quaternion()
            ok = np.allclose(m,o,atol=atol)
            if np.isclose(rot.as_quaternion()[0],0.0,atol=atol):
                ok |= np.allclose(m*-1.,o,atol=atol)
            assert ok and np.isclose(np.linalg.norm(o),1.0), f'{m},{o},{rot.as_quaternion()}'

    @pytest.mark.parametrize('normalize',[True,False])
    @pytest.mark.parametrize('degrees',[True,False])
    def test_axis_angle(self,set_of_rotations,degrees,normalize):
        for rot in set_of_rotations:
            m = rot.as_Euler_angles()
            o = Rotation.from_axis_angle(rot.as_axis_angle(degrees),degrees,normalize).as_Euler_angles()
            u = np.array([np.pi*2,np.pi,np.pi*2])
            ok = np.allclose(m,o,atol=atol)
            ok |= np.allclose(np.where(np.isclose(m,u),m-u,m),np.where(np.isclose(o,u),o-u,o),atol=atol)
            if np.isclose(m[1],0.0,atol=atol) or np.isclose(m[1],np.pi,atol=atol):
                ok |= np.allclose(conversion.eu2om(m),conversion.eu2om(o),atol=atol)
            assert ok and (np.zeros(3)-1.e-9 <= o).all() \
                      and (o <= np.array([np.pi*2.,np.pi,np.pi*2.])+1.e-9).all(), f'{m},{o},{rot.as_quaternion()}'

    def test_matrix(self,set_of_rotations):
        for rot in set_of_rotations:
            m = rot.as_axis_angle()
            o = Rotation.from_matrix(rot.as_matrix()).as_axis_angle()
            ok = np.allclose(m,o,atol=atol)
            if np.isclose(m[3],np.pi,atol=atol):
                ok |= np.allclose(m*np.array([-1.,-1.,-1.,1.]),o,atol=atol)
            assert ok and np.isclose(np.linalg.norm(o[:3]),1.0) \
                      and o[3]<=np.pi+1.e-9, f'{m},{o},{rot.as_quaternion()}'

    @pytest.mark.parametrize('normalize',[True,False])
    def test_Rodrigues(self,set_of_rotations,normalize):
        for rot in set_of_rotations:
            m = rot.as_matrix()
            o = Rotation.from_Rodrigues_vector(rot.as_Rodrigues_vector(),normalize).as_matrix()
            ok = np.allclose(m,o,atol=atol)
            assert ok and np.isclose(np.linalg.det(o),1.0), f'{m},{o}'

    def test_Rodrigues_compact(self,set_of_rotations):
        for rot in set_of_rotations:
            ro = rot.as_Rodrigues_vector()
            if np.isfinite(ro[3]):
                assert np.allclose(rot.as_Rodrigues_vector(compact=True),ro[:3]*ro[3])

    def test_homochoric(self,set_of_rotations):
        cutoff = np.tan(np.pi*.5*(1.-1e-4))
        for rot in set_of_rotations:
            m = rot.as_Rodrigues_vector()
            o = Rotation.from_homochoric(rot.as_homochoric()).as_Rodrigues_vector()
            ok = np.allclose(np.clip(m,None,cutoff),np.clip(o,None,cutoff),atol=atol)
            ok |= np.isclose(m[3],0.0,atol=atol)
            if m[3] > cutoff:
                ok |= np.allclose(m[:3],-1*o[:3],atol=atol)
            assert ok and np.isclose(np.linalg.norm(o[:3]),1.0), f'{m},{o},{rot.as_quaternion()}'

    def test_cubochoric(self,set_of_rotations):
        for rot in set_of_rotations:
            m = rot.as_homochoric()
            o = Rotation.from_cubochoric(rot.as_cubochoric()).as_homochoric()
            ok = np.allclose(m,o,atol=atol)
            if np.isclose(np.linalg.norm(m),(3.*np.pi/4.)**(1./3.),atol=atol):
                ok |= np.allclose(m*-1.,o,atol=atol)
            assert ok and np.linalg.norm(o) < (3.*np.pi/4.)**(1./3.) + 1.e-9, f'{m},{o},{rot.as_quaternion()}'

    @pytest.mark.parametrize('accept_homomorph',[True,False])
    def test_quaternion(self,set_of_rotations,accept_homomorph):
        c = -1 if accept_homomorph else 1
        for rot in set_of_rotations:
            m = rot.as_cubochoric()
            o = Rotation.from_quaternion(rot.as_quaternion()*c,accept_homomorph).as_cubochoric()
            ok = np.allclose(m,o,atol=atol)
            if np.count_nonzero(np.isclose(np.abs(o),np.pi**(2./3.)*.5)):
                ok |= np.allclose(m*-1.,o,atol=atol)
            assert ok and o.max() < np.pi**(2./3.)*0.5+1.e-9, f'{m},{o},{rot.as_quaternion()}'

    @pytest.mark.parametrize('layout',['scalar-first','vector-first'])
    def test_quaternion_layout(self,set_of_quaternions,layout):
        q = conversion.to_layout(set_of_quaternions,'scalar-first',layout)
        r = Rotation.from_quaternion(q,layout=layout)
        assert np.array_equal(r.quaternion,set_of_quaternions) and np.array_equal(r.as_quaternion(layout),q)

    def test_quaternion_layout_default(self,config,set_of_quaternions):
        config['quaternion_layout'] = 'vector-first'
        r = Rotation.from_quaternion(set_of_quaternions[:,[1,2,3,0]])
        assert np.array_equal(r.quaternion,set_of_quaternions)

    def test_quaternion_normalize(self,set_of_quaternions):
        assert Rotation.from_quaternion(set_of_quaternions*2.,normalize=True).allclose(Rotation(set_of_quaternions))


    @pytest.mark.parametrize('shape',[None,1,(4,4)])
    def test_random(self,shape):
        r = Rotation.from_random(shape)
        if shape is None:
            assert r.shape == ()
        elif shape == 1:
            assert r.shape == (1,)
        else:
            assert r.shape == shape

    def test_random_seed(self):
        assert (Rotation.from_random(10,rng_seed=4) == Rotation.from_random(10,rng_seed=4)).all()

    @pytest.mark.parametrize('shape',[None,5,(4,6)])
    def test_equal(self,shape):
        R = Rotation.from_random(shape,rng_seed=1)
        assert R == R if shape is None else (R == R).all()

    @pytest.mark.parametrize('shape',[None,5,(4,6)])
    def test_unequal(self,shape):
        R = Rotation.from_random(shape,rng_seed=1)
        assert not (R != R if shape is None else (R != R).any())

    def test_equal_ambiguous(self,np_rng):
        qu = np_rng.random((10,4))
        qu[:,0] = 0.
        qu/=np.linalg.norm(qu,axis=1,keepdims=True)
        assert (Rotation(qu) == Rotation(-qu)).all()

    def test_isclose(self):
        R = Rotation.from_random(10,rng_seed=2)
        assert R.allclose(R.copy(R.quaternion+1.e-10)) and not R.allclose(R.copy(R.quaternion+1.e-3))

    def test_inversion(self):
        r = Rotation.from_random()
        assert r == ~~r

    @pytest.mark.parametrize('shape',[1,(1,),(4,2),(1,1,1),(3,2,3,4)])
    def test_size(self,shape):
        assert Rotation.from_random(shape).size == np.prod(shape)

    @pytest.mark.parametrize('shape',[None,1,(1,),(4,2),(1,1,1),(3,2,3,4)])
    def test_shape(self,shape):
        r = Rotation.from_random(shape=shape)
        assert r.shape == (shape if isinstance(shape,tuple) else (shape,) if shape else ())

    @pytest.mark.parametrize('quat,standardized',[
                                                  ([-1,0,0,0],[1,0,0,0]),
                                                  ([-0.5,-0.5,-0.5,-0.5],[0.5,0.5,0.5,0.5]),
                                                 ])
    def test_standardization(self,quat,standardized):
        assert Rotation(quat)._standardize() == Rotation(standardized)

    @pytest.mark.parametrize('shape,length',[
                                          ((2,3,4),2),
                                          (4,4),
                                          ((),0)
                                         ])
    def test_len(self,shape,length):
        r = Rotation.from_random(shape=shape)
        assert len(r) == length

    def test_getitem(self):
        r = Rotation.from_random((4,3),rng_seed=3)
        assert r[1].shape == (3,) and r[1,2] == r[1][2] and r[:,0].shape == (4,)

    def test_getitem_scalar(self):
        with pytest.raises(IndexError):
            Rotation()[0]

    def test_repr(self):
        assert 'Quaternion' in repr(Rotation()) and '(3,)' in repr(Rotation.from_random(3))

    @pytest.mark.parametrize('function',[Rotation.from_quaternion,
                                         Rotation.from_Euler_angles,
                                         Rotation.from_axis_angle,
                                         Rotation.from_matrix,
                                         Rotation.from_Rodrigues_vector,
                                         Rotation.from_homochoric,
                                         Rotation.from_cubochoric])
    def test_invalid_shape(self,function,np_rng):
        invalid_shape = np_rng.random(np_rng.integers(8,32,(3)))
        with pytest.raises(ValueError):
            function(invalid_shape)

    @pytest.mark.parametrize('function,invalid',[(Rotation.from_quaternion, np.array([-1,0,0,0])),
                                                 (Rotation.from_quaternion,        np.array([1,1,1,0])),
                                                 (Rotation.from_Euler_angles,      np.array([1,4,0])),
                                                 (Rotation.from_axis_angle,        np.array([1,0,0,4])),
                                                 (Rotation.from_axis_angle,        np.array([1,1,0,1])),
                                                 (Rotation.from_matrix,            np.array([[1,0,0],[0,1,0],[0,1,1]])),
                                                 (Rotation.from_matrix,            np.array([[1,1,0],[1,2,0],[0,0,1]])),
                                                 (Rotation.from_Rodrigues_vector,  np.array([1,0,0,-1])),
                                                 (Rotation.from_Rodrigues_vector,  np.array([1,1,0,1])),
                                                 (Rotation.from_homochoric,        np.array([2,2,2])),
                                                 (Rotation.from_cubochoric,        np.array([1.1,0,0]))  ])
    def test_invalid_value(self,function,invalid):
        with pytest.raises(ValueError):
            function(invalid)

    def test_invalid_value_message(self):
        with pytest.raises(ValueError,match='Phi Euler angle'):
            Rotation.from_Euler_angles([[0.,0.,0.],[1.,4.,0.]])


    def test_composition(self):
        a,b = (Rotation.from_random(rng_seed=s) for s in (1,2))
        assert np.allclose((a*b).as_matrix(),a.as_matrix()@b.as_matrix())

    def test_composition_standardized(self):
        a,b = (Rotation.from_random(100,rng_seed=s) for s in (3,4))
        assert np.all((a*b).quaternion[...,0] >= 0.)

    def test_composition_invalid(self):
        with pytest.raises(TypeError):
            Rotation()*np.ones(3)

    def test_composition_inverse(self):
        a,b = (Rotation.from_random(rng_seed=s) for s in (5,6))
        c = a/b
        assert c.allclose(a*~b) and (c*b).allclose(a)

    def test_composition_inverse_invalid(self):
        with pytest.raises(TypeError):
            Rotation()/np.ones(3)

    def test_invariant(self):
        R = Rotation.from_random(rng_seed=7)
        assert (R/R).allclose(Rotation())
