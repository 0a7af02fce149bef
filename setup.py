# -*- encoding: utf-8 -*-
from setuptools import setup, find_packages

with open('README.rst', 'r', encoding='utf-8') as fh:
    long_description = fh.read()


def get_version_and_cmdclass(package_path):
    import os
    from importlib.util import module_from_spec, spec_from_file_location
    spec = spec_from_file_location('version', os.path.join('src', package_path, '_version.py'))
    module = module_from_spec(spec)
    spec.loader.exec_module(module)
    return module.__version__, module.cmdclass


version, cmdclass = get_version_and_cmdclass('cephfs_provisioner')

setup(
    name='cephfs-provisioner',
    version=version,
    cmdclass=cmdclass,
    description='Dynamic provisioner for Kubernetes persistent volumes backed by CephFS',
    long_description=long_description,
    long_description_content_type='text/x-rst',
    classifiers="""Development Status :: 3 - Alpha
Environment :: Console
Intended Audience :: System Administrators
License :: OSI Approved :: Apache Software License
Operating System :: POSIX
Programming Language :: Python :: 3
Topic :: System :: Filesystems
""" [:-1].split('\n'),
    keywords='ceph cephfs kubernetes provisioner',
    license='Apache-2.0',
    packages=find_packages('src', exclude=['*.tests', '*.tests.*']),
    package_dir={
        '': 'src',
    },
    package_data={
        'cephfs_provisioner': ['schemas/*/*.yaml'],
    },
    zip_safe=True,
    install_requires=[
        'setproctitle>=1.1.8',
        'ruamel.yaml>=0.17,<0.19',
        'argcomplete>=1.9.4',
        'cerberus>=1.2,<2',
        'semantic_version>=2.8.0,<3',
        'structlog>=21.5.0',
        'colorama>=0.4.1,<1',
        'pykube-ng>=20.1.0',
        'apscheduler>=3.6,<4',
        'blinker>=1.4',
        'prometheus_client>=0.7.1',
    ],
    extras_require={
        # For the cephfs gateway the packages supplied by the Linux distribution or the Ceph team should be used,
        # possible package names include: python3-cephfs
        #'CephFS support': ['cephfs'],
        'dev': ['pytest', 'parameterized'],
    },
    python_requires='>=3.7',
    entry_points="""
        [console_scripts]
            cephfs-provisioner = cephfs_provisioner.scripts.cephfs_provisioner:main
    """,
)
