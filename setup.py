from setuptools import setup, find_packages
setup(
    name="dubai_map_editor",
    version="0.1.0",
    package_dir={"": "src"},
    packages=find_packages("src"),
    include_package_data=True,
    python_requires=">=3.9",
    install_requires=[
        "fastapi",
        "httpx",
        "pydantic>=2",
        "shapely",
        "uvicorn",
    ],
    extras_require={
        'test': ['pytest'],
    },
    entry_points={
        'console_scripts': [
            'dubai_map_editor=dubai_map_editor.__main__:_safe_main'
        ]
    }
)
