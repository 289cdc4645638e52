from setuptools import setup

setup(
    name="bitpak",
    version="0.1.0",
    install_requires=["numpy"],
    extras_require={
        "test": ["pytest"],
    },
    packages=["bitpak"],

    entry_points = {
        "console_scripts": [
            "bitpak=bitpak.tools:main_pack",
            "bitunpak=bitpak.tools:main_unpack",
            "bitplay=bitpak.tools:main_play",
        ],
    },
)
