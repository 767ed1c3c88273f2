import os
import copy
import logging
from io import StringIO
from collections.abc import Iterable
from typing import Optional, Union, Any, Type, TypeVar

import numpy as np
import yaml
try:
    from yaml import CSafeLoader as SafeLoader
    from yaml import CSafeDumper as SafeDumper
except ImportError:
    from yaml import SafeLoader                                                                     # type: ignore[assignment]
    from yaml import SafeDumper                                                                     # type: ignore[assignment]

from ._typehints import FileHandle
from ._environment import Environment
from . import util


logger = logging.getLogger(__name__)

MyType = TypeVar('MyType', bound='Config')

_defaults = {'quaternion_layout': 'scalar-first',
             'num_threads':       None,
             'chunk_size_min':    1024,
            }

_layouts = ['scalar-first','vector-first']


class NiceDumper(SafeDumper):
    """Improve YAML readability for humans."""

    def represent_data(self,
                       data: Any):
        """Cast Config objects and their subclasses to dict."""
        if isinstance(data, dict) and type(data) is not dict:
            return self.represent_data(dict(data))
        if isinstance(data, np.ndarray):
            return self.represent_data(data.tolist())
        if isinstance(data, np.generic):
            return self.represent_data(data.item())

        return super().represent_data(data)

    def ignore_aliases(self,
                       data: Any) -> bool:
        """Do not use references to existing objects."""
        return True


class Config(dict):
    """
    YAML-based configuration.

    Recognized keys:

    - quaternion_layout: 'scalar-first' (w,x,y,z) or 'vector-first' (x,y,z,w).
      Used by all quaternion-touching operations if no layout is given.
    - num_threads: number of worker threads for batch operations.
      None uses all available processors.
    - chunk_size_min: minimum number of tuples per chunk of a batch operation.

    """

    def __init__(self,
                 config: Optional[Union[str, dict[str, Any]]] = None,
                 **kwargs):
        """
        New YAML-based configuration.

        Parameters
        ----------
        config : dict or str, optional
            YAML. String needs to be valid YAML.
        **kwargs : arbitrary key–value pairs, optional
            Top-level entries of the configuration.

        Notes
        -----
        Values given as key–value pairs take precedence
        over entries with the same key in 'config'.
        """
        if isinstance(config,str):
            kwargs = (yaml.load(config, Loader=SafeLoader) or {}) | kwargs
        elif isinstance(config,dict):
            kwargs = config | kwargs

        super().__init__(**kwargs)


    def __repr__(self) -> str:
        """
        Return repr(self).

        Show as in file.
        """
        output = StringIO()
        self.save(output)
        output.seek(0)
        return ''.join(output.readlines())


    def __copy__(self: MyType) -> MyType:
        """
        Return deepcopy(self).

        Create deep copy.
        """
        return copy.deepcopy(self)

    copy = __copy__


    def __or__(self: MyType,
               other) -> MyType:
        """
        Return self|other.

        Update configuration with contents of other.

        Parameters
        ----------
        other : crysrot.Config or dict
            Key–value pairs that update self.

        Returns
        -------
        updated : crysrot.Config
            Updated configuration.
        """
        duplicate = self.copy()
        duplicate.update(other)
        return duplicate


    def __ior__(self: MyType,
                other) -> MyType:
        """
        Return self|=other.

        Update configuration with contents of other (in-place).

        Parameters
        ----------
        other : crysrot.Config or dict
            Key–value pairs that update self.
        """
        self.update(other)
        return self


    def delete(self: MyType,
               keys: Union[Iterable, str]) -> MyType:
        """
        Remove configuration keys.

        Parameters
        ----------
        keys : iterable or scalar
            Label of the key(s) to remove.

        Returns
        -------
        updated : crysrot.Config
            Updated configuration.
        """
        duplicate = self.copy()
        for k in util.to_list(keys):
            del duplicate[k]
        return duplicate


    @classmethod
    def load(cls: Type[MyType],
             fname: FileHandle) -> MyType:
        """
        Load from YAML file.

        Parameters
        ----------
        fname : file, str, or pathlib.Path
            Filename or file to read.

        Returns
        -------
        loaded : crysrot.Config
            Configuration from file.
        """
        with util.open_text(fname) as fhandle:
            return cls(yaml.load(fhandle, Loader=SafeLoader))


    def save(self,
             fname: FileHandle,
             **kwargs):
        """
        Save to YAML file.

        Parameters
        ----------
        fname : file, str, or pathlib.Path
            Filename or file to write.
        **kwargs : dict
            Keyword arguments parsed to yaml.dump.
        """
        for key,default in [('width',256),
                            ('default_flow_style',None),
                            ('sort_keys',False),
                            ('allow_unicode',True),
                            ('Dumper',NiceDumper)]:
            if key not in kwargs:
                kwargs[key] = default

        with util.open_text(fname,'w') as fhandle:
            fhandle.write(yaml.dump(self,**kwargs))


    @classmethod
    def from_environment(cls: Type[MyType]) -> MyType:
        """
        Create configuration from defaults and environment variables.

        Entries of the YAML file named by CRYSROT_CONFIG take precedence
        over the defaults; CRYSROT_NUM_THREADS and CRYSROT_QUATERNION_LAYOUT
        take precedence over both. Unknown keys in the file are dropped.

        Returns
        -------
        config : crysrot.Config
            Configuration for the current process.
        """
        options = Environment().options
        config = cls(_defaults)
        if options['CRYSROT_CONFIG'] is not None:
            user = cls.load(options['CRYSROT_CONFIG'])
            if unknown := [k for k in user if k not in _defaults]:
                logger.warning(util.warn(f'ignoring unknown configuration keys {unknown}'))
            config |= user.delete(unknown)
        if options['CRYSROT_NUM_THREADS'] is not None:
            config['num_threads'] = int(options['CRYSROT_NUM_THREADS'])
        if options['CRYSROT_QUATERNION_LAYOUT'] is not None:
            config['quaternion_layout'] = options['CRYSROT_QUATERNION_LAYOUT']

        if not config.is_valid:
            logger.warning(util.warn(f'invalid configuration from environment:\n{config}'))
        return config


    @property
    def N_threads(self) -> int:
        """Number of worker threads for batch operations."""
        return self.get('num_threads') or os.cpu_count() or 1


    @property
    def is_complete(self) -> bool:
        """Check for completeness."""
        return all(k in self for k in _defaults)


    @property
    def is_valid(self) -> bool:
        """Check for valid content."""
        ok = True
        if self.get('quaternion_layout',_layouts[0]) not in _layouts:
            logger.warning(f'quaternion layout "{self["quaternion_layout"]}" not in {_layouts}')
            ok = False
        if (N := self.get('num_threads')) is not None and (not isinstance(N,int) or N < 1):
            logger.warning(f'number of threads "{N}" is not a positive integer')
            ok = False
        if (N := self.get('chunk_size_min',1)) is None or not isinstance(N,int) or N < 1:
            logger.warning(f'minimum chunk size "{N}" is not a positive integer')
            ok = False
        return ok


config = Config.from_environment()
