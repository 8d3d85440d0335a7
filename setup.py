from setuptools import setup, find_namespace_packages

setup(
    name='photo_drop',
    version='0.1.0',
    packages=find_namespace_packages(where='src', include=['photo_file_server*', 'photo_file_sdk*']),
    package_dir={'': 'src'},
    package_data={"photo_file_server.config": ["*.json"]},
    python_requires='>=3.10',
    install_requires=[
        'fastapi',
        'python-multipart',
        'starlette',
        'uvicorn',
        'pydantic>=2',
        'pydantic-settings>=2.2',
        'requests',
        'requests-toolbelt',
    ],
    extras_require={
        'test': ['pytest', 'httpx'],
    },
    entry_points={
        'console_scripts': ['photo-drop-server=photo_file_server.main:run'],
    },
    description='directory scoped photo storage server and upload/gallery sdk',
    long_description="",
    long_description_content_type='text/markdown',
    classifiers=[]
)
