from setuptools import setup, find_packages

setup(
    name="reason",
    version="0.1.0",
    description="An interactive shell for managing a personal collection of papers, with pipeable commands.",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    python_requires=">=3.11",
    install_requires=[
        "parsy",
        "pydantic>=2",
        "PyYAML",
        "prompt_toolkit",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "reason=reason.app.shell:main",
        ],
    },
)
