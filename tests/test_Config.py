import os
import logging

import pytest
import numpy as np

from crysrot import Config


class TestConfig:

    def test_init_keyword(self):
        assert Config(p=4)['p'] == 4

    @pytest.mark.parametrize('config',[{'p':1},'{p: 1}'])
    def test_init_config(self,config):
        assert Config(config)['p'] == 1

    @pytest.mark.parametrize('config',[{'p':1},'{p: 1}'])
    def test_init_both(self,config):
        assert Config(config,p=2)['p'] == 2

    def test_init_empty_str(self):
        assert Config('') == Config()

    @pytest.mark.parametrize('flow_style',[None,True,False])
    def test_load_save_str(self,tmp_path,flow_style):
        config = Config()
        config['quaternion_layout'] = 'vector-first'
        config['num_threads'] = 4
        config.save(tmp_path/'config.yaml',default_flow_style=flow_style)
        assert Config.load(tmp_path/'config.yaml') == config

    def test_load_save_file(self,tmp_path):
        config = Config(num_threads=2,chunk_size_min=16)
        with open(tmp_path/'config.yaml','w') as f:
            config.save(f)
        with open(tmp_path/'config.yaml') as f:
            assert Config.load(f) == config

    def test_add_remove(self):
        dummy = {'num_threads':3,'chunk_size_min':8}
        config = Config()
        config |= dummy
        assert config == Config() | dummy
        config = config.delete(dummy)
        assert config == Config()
        assert (config |        dummy ).delete(        'num_threads'                    ) == config | {'chunk_size_min':8}
        assert (config |        dummy ).delete([       'num_threads',  'chunk_size_min'   ]) == config
        assert (config | Config(dummy)).delete({       'num_threads':1,'chunk_size_min':2 }) == config
        assert (config | Config(dummy)).delete(Config({'num_threads':1                  })) == config | {'chunk_size_min':8}

    def test_copy(self):
        config = Config(a=[1,2])
        duplicate = config.copy()
        duplicate['a'].append(3)
        assert config['a'] == [1,2]

    def test_repr(self,tmp_path):
        config = Config(quaternion_layout='scalar-first',num_threads=None)
        with open(tmp_path/'config.yaml','w') as f:
            f.write(config.__repr__())
        assert Config.load(tmp_path/'config.yaml') == config

    def test_numpy(self):
        assert Config({'A':np.ones(3,'i'), 'B':np.ones(1)[0]}).__repr__() == \
               Config({'A':[1,1,1],        'B':1.0}).__repr__()

    def test_initialize(self):
        yml = """
        a:
           - 1
           - 2
        """
        assert Config(yml) == Config('{"a":[1,2]}') == Config(a=[1,2]) == Config(dict(a=[1,2]))


    def test_from_environment_default(self,monkeypatch):
        for k in ['CRYSROT_CONFIG','CRYSROT_NUM_THREADS','CRYSROT_QUATERNION_LAYOUT']:
            monkeypatch.delenv(k,raising=False)
        config = Config.from_environment()
        assert config['quaternion_layout'] == 'scalar-first' and config['num_threads'] is None
        assert config.is_complete and config.is_valid

    def test_from_environment(self,monkeypatch):
        monkeypatch.setenv('CRYSROT_NUM_THREADS','3')
        monkeypatch.setenv('CRYSROT_QUATERNION_LAYOUT','vector-first')
        config = Config.from_environment()
        assert config['num_threads'] == 3 and config.N_threads == 3
        assert config['quaternion_layout'] == 'vector-first'

    def test_from_environment_invalid(self,monkeypatch,caplog):
        monkeypatch.setenv('CRYSROT_QUATERNION_LAYOUT','xyzw')
        with caplog.at_level(logging.WARNING):
            config = Config.from_environment()
        assert not config.is_valid and 'xyzw' in caplog.text

    def test_from_environment_file(self,monkeypatch,tmp_path):
        Config(num_threads=2,chunk_size_min=64).save(tmp_path/'crysrot.yaml')
        monkeypatch.setenv('CRYSROT_CONFIG',str(tmp_path/'crysrot.yaml'))
        for k in ['CRYSROT_NUM_THREADS','CRYSROT_QUATERNION_LAYOUT']:
            monkeypatch.delenv(k,raising=False)
        assert Config.from_environment() == Config(quaternion_layout='scalar-first',
                                                   num_threads=2,chunk_size_min=64)

    def test_from_environment_file_precedence(self,monkeypatch,tmp_path):
        Config(num_threads=2,quaternion_layout='vector-first').save(tmp_path/'crysrot.yaml')
        monkeypatch.setenv('CRYSROT_CONFIG',str(tmp_path/'crysrot.yaml'))
        monkeypatch.setenv('CRYSROT_NUM_THREADS','5')
        monkeypatch.delenv('CRYSROT_QUATERNION_LAYOUT',raising=False)
        config = Config.from_environment()
        assert config['num_threads'] == 5 and config['quaternion_layout'] == 'vector-first'

    def test_from_environment_file_unknown(self,monkeypatch,tmp_path,caplog):
        Config(num_threads=2,colour='blue').save(tmp_path/'crysrot.yaml')
        monkeypatch.setenv('CRYSROT_CONFIG',str(tmp_path/'crysrot.yaml'))
        with caplog.at_level(logging.WARNING):
            config = Config.from_environment()
        assert 'colour' not in config and 'colour' in caplog.text and config.is_complete

    def test_N_threads_default(self):
        assert Config(num_threads=None).N_threads == (os.cpu_count() or 1)

    def test_is_complete(self):
        assert not Config(num_threads=1).is_complete

    @pytest.mark.parametrize('key,value',[('quaternion_layout','wxyz'),
                                          ('num_threads',0),
                                          ('num_threads',2.5),
                                          ('chunk_size_min',None),
                                          ('chunk_size_min',-1)])
    def test_is_valid(self,key,value):
        assert not Config({key:value}).is_valid

    def test_is_valid_empty(self):
        assert Config().is_valid
