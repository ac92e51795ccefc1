pytest_plugins = ["licensetoken.testing_utils"]
