import os
import ast
from setuptools import setup


def read_description():
    # dataio imports numpy, so fish DESCRIPTION out without importing it.
    with open(os.path.join(os.path.dirname(__file__), 'dataio.py')) as fp:
        module = ast.parse(fp.read())
    for node in module.body:
        if (isinstance(node, ast.Assign) and
                getattr(node.targets[0], 'id', None) == 'DESCRIPTION'):
            return ast.literal_eval(node.value)
    raise ValueError("DESCRIPTION not found in dataio.py")


DESCRIPTION = read_description()
headline = DESCRIPTION.split('\n', 1)[0].rstrip('.')


setup(
    name='demgrid-io',
    version='0.1',
    description=headline,
    long_description=DESCRIPTION,
    author='https://github.com/Mortal',
    url='https://github.com/Mortal/demgrid-io',
    py_modules=['demgrid', 'dataio', 'gridconvert'],
    include_package_data=True,
    license='GPLv3',
    python_requires='>=3.6',
    install_requires=['numpy'],
    extras_require={
        'test': ['pytest'],
    },
    entry_points={
        'console_scripts': ['gridconvert = gridconvert:main'],
    },
    classifiers=[
        'License :: OSI Approved :: GNU General Public License (GPL)',
        'Intended Audience :: Developers',
        'Intended Audience :: Science/Research',
        'Topic :: Scientific/Engineering :: GIS',
        'Programming Language :: Python :: 3',
    ],
)
