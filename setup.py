"""Setup script for perfwatch"""

from setuptools import setup, find_packages

setup(
    name="perfwatch",
    version="0.1.0",
    description="Track Lighthouse audits in CI: per-metric medians, rolling regression checks, one tracking issue",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Topic :: Software Development :: Testing",
        "Topic :: Internet :: WWW/HTTP :: Site Management",
        "Programming Language :: Python :: 3",
    ],
    python_requires=">=3.9",
    install_requires=[
        "numpy>=1.20.0",
        "typer>=0.9.0,<0.26",
        "click>=8.0.0",
        "rich>=13.0.0",
        "httpx>=0.24.0",
        "tomli>=1.1.0; python_version<'3.11'",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "perfwatch=perfwatch.cli:main",
        ],
    },
    keywords="lighthouse web-vitals performance regression github-actions",
)
