import setuptools

with open("README.md", "r", encoding = "utf-8") as fh:
	long_description = fh.read()

setuptools.setup(
	name = "tierfsa",
	version = "v0.1.0",
	description = "Finite-state acceptors with looping states for autosegmental tiers",
	long_description = long_description,
	long_description_content_type = "text/markdown",
	classifiers = [
		"Programming Language :: Python :: 3",
		"License :: OSI Approved :: Apache Software License",
		"Operating System :: OS Independent",
	],
	package_dir = {"": "src"},
	packages = setuptools.find_packages(where="src"),
	python_requires = ">=3.7",
	install_requires = [
		"IPython", "graphviz"
	],
	extras_require = {
		"test": ["pytest"],
	},
)
