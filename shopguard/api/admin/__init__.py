"""
관리자 API 라우터 패키지
"""
