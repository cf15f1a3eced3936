"""
Excel Visualizer API

This package provides an API for uploading Excel files, parsing them into
typed rows, analysing their columns and building 2D/3D chart data from them.
Users own files and charts; charts can be shared publicly and admins
moderate users, files and charts.

Key modules:
- main.py: FastAPI application, logging and error handlers
- excel_parser.py: Workbook parsing and column type inference
- chart_builder.py: Projection of file columns into chart series
- file_service.py / chart_service.py / admin_service.py: Use cases returning Results
- routes/: API routers under /api
- utils/result.py: Result pattern implementation for error handling
"""
