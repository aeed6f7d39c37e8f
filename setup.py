# Copyright 2019-2025 ETH Zurich and the DaCe authors. All rights reserved.
import os

from setuptools import find_packages, setup

gradgraph_path = os.path.dirname(os.path.abspath(__file__)) + '/gradgraph/'

with open("README.md", "r") as fp:
    long_description = fp.read()

with open(os.path.join(gradgraph_path, "version.py"), "r") as fp:
    version = fp.read().strip().split(' ')[-1][1:-1]

setup(name='gradgraph',
      version=version,
      description='Backward graph construction for operator networks',
      long_description=long_description,
      long_description_content_type='text/markdown',
      classifiers=[
          "Programming Language :: Python :: 3",
          "License :: OSI Approved :: BSD License",
          "Operating System :: OS Independent",
      ],
      python_requires='>=3.8',
      packages=find_packages(exclude=["*.tests", "*.tests.*", "tests.*", "tests"]),
      package_data={'': ['*.yml']},
      include_package_data=True,
      install_requires=['networkx >= 2.5', 'pyyaml', 'aenum >= 3.1'],
      extras_require={
          'testing': ['coverage', 'pytest', 'pytest-cov'],
      })
