from setuptools import setup

with open('README.rst') as file:
    long_description = file.read()

setup(
    name='note_eval',
    version='0.1',
    description='Note-level matching and scoring for music transcription.',
    packages=['note_eval'],
    long_description=long_description,
    classifiers=[
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python",
        "Intended Audience :: Developers",
        "Topic :: Multimedia :: Sound/Audio :: Analysis",
        "Programming Language :: Python :: 3",
    ],
    keywords='audio music mir transcription midi evaluation',
    license='MIT',
    install_requires=[
        'numpy >= 1.17.0',
        'scipy >= 1.4.0',
    ],
    extras_require={
        'testing': ['pytest']
    }
)
