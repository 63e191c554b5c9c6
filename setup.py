from setuptools import setup, find_packages

setup(
    name='pressindex',
    version='0.1.0',
    packages=find_packages(),
    entry_points={
        'console_scripts': [
            'pressindex=pressindex.cli:main',
        ],
    },
    install_requires=[
        'python-dotenv',
        'pyyaml',
        'pydantic>=2',
        'requests',
        'click',
        'beautifulsoup4',
        'elasticsearch>=8',
    ],
    extras_require={
        'server': [
            'fastapi',
            'uvicorn',
        ],
        'test': [
            'pytest',
            'fastapi',
            'httpx',
        ],
    },
    author='While True Industries',
    author_email='adam@whiletrue.industries',
    description='Keeps a CMS corpus in sync with its Elasticsearch search index',
    python_requires='>=3.10',
)
