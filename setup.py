import setuptools
from pathlib import Path
import re

# https://www.python.org/dev/peps/pep-0440
with open(Path(__file__).parent/'crysrot/VERSION') as f:
    version = re.sub(r'(-([^-]*)).*$',r'.\2',re.sub(r'^v(\d+\.\d+(\.\d+)?)',r'\1',f.readline().strip()))

setuptools.setup(
    name='crysrot',
    version=version,
    author='The crysrot team',
    description='Crystallographic rotation library',
    long_description='Conversion between rotation representations and crystal symmetry reduction',
    packages=setuptools.find_packages(include=['crysrot','crysrot.*']),
    package_data={'crysrot': ['VERSION']},
    include_package_data=True,
    python_requires = '>=3.10',
    install_requires = [
        'numpy>=1.22',
        'pyyaml>=5.1',
    ],
    extras_require = {
        'test': [
            'pytest>=6.0',
            'scipy>=1.2',                                                                           # reference rotations
        ],
    },
    classifiers = [
        'Intended Audience :: Science/Research',
        'Topic :: Scientific/Engineering',
        'Programming Language :: Python :: 3',
        'License :: OSI Approved :: GNU General Public License v3 or later (GPLv3+)',
        'Operating System :: OS Independent',
    ],
)
