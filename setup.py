from setuptools import setup, find_packages

setup(
    name='cmpstyle',
    version='0.1.0',
    description='Decode city map (.cmp) and style (.g24) files of top-down city games',
    long_description=open('README.md').read(),
    long_description_content_type='text/markdown',
    packages=find_packages(include=['cmpstyle', 'cmpstyle.*']),
    install_requires=[
        'numpy>=1.20.0',
    ],
    extras_require={
        'dev': [
            'pytest>=7.0.0',
            'pytest-cov>=4.0.0',
        ],
    },
    entry_points={
        'console_scripts': [
            'cmpstyle=cmpstyle.cli:main',
        ],
    },
    classifiers=[
        'Development Status :: 4 - Beta',
        'Intended Audience :: Developers',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3.8',
        'Programming Language :: Python :: 3.9',
        'Programming Language :: Python :: 3.10',
        'Programming Language :: Python :: 3.11',
        'Operating System :: OS Independent',
        'Topic :: Games/Entertainment',
        'Topic :: Multimedia :: Graphics',
    ],
    python_requires='>=3.8',
    include_package_data=True,
    package_data={
        'cmpstyle': ['py.typed'],
    },
)
