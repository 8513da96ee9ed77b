from setuptools import setup

setup(
    name='liftchain',
    version='0.1.0',
    description='UCSC chain file parsing and genome coordinate liftover',
    install_requires=['pandas', 'numpy'],
    extras_require={'test': ['pytest']},
    packages=['liftchain'],
    python_requires='>=3.10',
    zip_safe=False
)
