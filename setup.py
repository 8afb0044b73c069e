import site
import sys
from setuptools import setup, find_packages

# workaround bug https://github.com/pypa/pip/issues/7953
site.ENABLE_USER_SITE = "--user" in sys.argv[1:]

setup(
    name="tpm2-tsskey",
    version="0.1.0",
    description="Codec for TSS2 private key files used by tpm2-tss-engine and tpm2-openssl",
    long_description="DER and PEM encoding of the TPM wrapped TSS2 PRIVATE KEY format.",
    license="BSD-2-Clause",
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: BSD License",
        "Topic :: Security :: Cryptography",
    ],
    python_requires=">=3.7",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    package_data={"tpm2_tsskey": ["config.json"]},
    install_requires=["asn1crypto", "PyYAML"],
    extras_require={"dev": ["pytest"]},
)
