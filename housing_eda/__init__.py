"""
Housing EDA Report
==================

Exploratory analysis and baseline models for the California housing dataset.

Modules:
    - data_loader: Config loading, CSV download, ingestion and validation
    - preprocessing: Median imputation, value labelling and feature matrices
    - eda: The five report figures (bivariate map, ridges, loess, correlation, distributions)
    - model: Linear regression, classification tree and regression tree
    - evaluation: Model metrics and diagnostic plots
"""

__version__ = "1.0.0"
__author__ = "Housing Analytics Team"
