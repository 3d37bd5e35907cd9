"""
Kodein Database Connection - MySQL
"""
import mysql.connector
from mysql.connector import errorcode, pooling
from config import settings
from contextlib import contextmanager
import logging
import threading

logger = logging.getLogger(__name__)

db_config = {
    "host": settings.DB_HOST,
    "port": settings.DB_PORT,
    "user": settings.DB_USER,
    "password": settings.DB_PASSWORD,
    "database": settings.DB_NAME,
    "charset": "utf8mb4",
    "collation": "utf8mb4_unicode_ci",
    "connection_timeout": settings.DB_CONNECT_TIMEOUT,
    "autocommit": False
}

_pool = None
_pool_lock = threading.Lock()


def get_connection_pool():
    """Create the connection pool on first use"""
    global _pool
    if _pool is None:
        with _pool_lock:
            if _pool is None:
                _pool = pooling.MySQLConnectionPool(
                    pool_name="kodein_pool",
                    pool_size=settings.DB_POOL_SIZE,
                    pool_reset_session=True,
                    **db_config
                )
                logger.info("Database connection pool created successfully")
    return _pool


@contextmanager
def get_db_connection():
    """Get a database connection from the pool"""
    connection = None
    try:
        connection = get_connection_pool().get_connection()
        yield connection
        connection.commit()
    except Exception as e:
        if connection:
            connection.rollback()
        logger.error(f"Database error: {e}")
        raise
    finally:
        if connection:
            connection.close()


@contextmanager
def get_db_cursor(dictionary=True):
    """Get a database cursor"""
    with get_db_connection() as connection:
        cursor = connection.cursor(dictionary=dictionary)
        try:
            yield cursor
        finally:
            cursor.close()


SCHEMA_STATEMENTS = [
    """CREATE TABLE IF NOT EXISTS profiles (
           id VARCHAR(64) PRIMARY KEY,
           username VARCHAR(100) NULL,
           full_name VARCHAR(200) NULL,
           avatar_url VARCHAR(500) NULL,
           xp_points INT NOT NULL DEFAULT 0,
           level INT NOT NULL DEFAULT 1,
           streak_days INT NOT NULL DEFAULT 0,
           role VARCHAR(16) NOT NULL DEFAULT 'user',
           created_at DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP,
           INDEX idx_profiles_ranking (xp_points DESC, created_at, id)
       )""",
    """CREATE TABLE IF NOT EXISTS courses (
           id VARCHAR(64) PRIMARY KEY,
           title VARCHAR(200) NOT NULL,
           description TEXT NULL,
           created_at DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP
       )""",
    """CREATE TABLE IF NOT EXISTS lessons (
           id VARCHAR(64) PRIMARY KEY,
           course_id VARCHAR(64) NOT NULL,
           title VARCHAR(200) NULL,
           content MEDIUMTEXT NULL,
           code_template TEXT NULL,
           xp_reward INT NOT NULL DEFAULT 10,
           lesson_order INT NOT NULL DEFAULT 0,
           INDEX idx_lessons_course (course_id, lesson_order)
       )""",
    """CREATE TABLE IF NOT EXISTS quizzes (
           id VARCHAR(64) PRIMARY KEY,
           lesson_id VARCHAR(64) NOT NULL,
           question TEXT NOT NULL,
           options JSON NOT NULL,
           correct_answer INT NOT NULL,
           explanation TEXT NULL,
           sort_order INT NOT NULL DEFAULT 0,
           INDEX idx_quizzes_lesson (lesson_id, sort_order)
       )""",
    """CREATE TABLE IF NOT EXISTS user_progress (
           id BIGINT AUTO_INCREMENT PRIMARY KEY,
           user_id VARCHAR(64) NOT NULL,
           lesson_id VARCHAR(64) NOT NULL,
           course_id VARCHAR(64) NOT NULL,
           completed BOOLEAN NOT NULL DEFAULT FALSE,
           completed_at DATETIME NULL,
           score INT NULL,
           UNIQUE KEY uq_user_progress_user_lesson (user_id, lesson_id)
       )""",
]

# Created only when missing and never dropped
ROUTINES = {
    "is_lesson_completed": """CREATE FUNCTION is_lesson_completed(p_user_id VARCHAR(64), p_lesson_id VARCHAR(64))
       RETURNS BOOLEAN
       READS SQL DATA
       BEGIN
           RETURN EXISTS(
               SELECT 1 FROM user_progress
               WHERE user_id = p_user_id AND lesson_id = p_lesson_id AND completed = TRUE
           );
       END""",
    # Runs inside the caller's transaction: the row lock is held until commit
    "add_user_xp": """CREATE PROCEDURE add_user_xp(IN p_user_id VARCHAR(64), IN p_xp_amount INT)
       BEGIN
           DECLARE v_xp INT DEFAULT NULL;
           DECLARE v_new_xp INT;
           DECLARE v_new_level INT;

           SELECT xp_points INTO v_xp FROM profiles WHERE id = p_user_id FOR UPDATE;

           IF v_xp IS NULL THEN
               SELECT FALSE AS success, 0 AS newXP, 1 AS newLevel, 'Profile not found' AS error;
           ELSE
               SET v_new_xp = v_xp + p_xp_amount;
               SET v_new_level = FLOOR(SQRT(v_new_xp DIV 100)) + 1;
               UPDATE profiles SET xp_points = v_new_xp, level = v_new_level WHERE id = p_user_id;
               SELECT TRUE AS success, v_new_xp AS newXP, v_new_level AS newLevel, NULL AS error;
           END IF;
       END""",
}


def init_database():
    """Initialize database - create if not exists"""
    try:
        # First connect without database to create it
        conn = mysql.connector.connect(
            host=settings.DB_HOST,
            port=settings.DB_PORT,
            user=settings.DB_USER,
            password=settings.DB_PASSWORD,
            connection_timeout=settings.DB_CONNECT_TIMEOUT
        )
        cursor = conn.cursor()
        cursor.execute(f"CREATE DATABASE IF NOT EXISTS {settings.DB_NAME} CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci")
        cursor.close()
        conn.close()
        logger.info(f"Database '{settings.DB_NAME}' ready")
        return True
    except Exception as e:
        logger.error(f"Error initializing database: {e}")
        return False


ROUTINE_EXISTS_QUERY = """SELECT COUNT(*) AS count FROM information_schema.ROUTINES
   WHERE ROUTINE_SCHEMA = DATABASE() AND ROUTINE_NAME = %s"""


def routine_exists(cursor, name: str) -> bool:
    cursor.execute(ROUTINE_EXISTS_QUERY, (name,))
    row = cursor.fetchone()
    if row is None:
        return False
    count = row["count"] if isinstance(row, dict) else row[0]
    return bool(count)


def install_routines(cursor):
    """Create the server-side routines that are not installed yet"""
    installed = []
    for name, statement in ROUTINES.items():
        if routine_exists(cursor, name):
            continue
        try:
            cursor.execute(statement)
        except mysql.connector.Error as e:
            # Another process created it between the check and the CREATE
            if e.errno != errorcode.ER_SP_ALREADY_EXISTS:
                raise
            logger.info(f"Routine {name} was installed concurrently")
            continue
        installed.append(name)
    return installed


def init_schema():
    """Create tables and install missing server-side routines"""
    try:
        with get_db_cursor(dictionary=False) as cursor:
            for statement in SCHEMA_STATEMENTS:
                cursor.execute(statement)
            installed = install_routines(cursor)
        if installed:
            logger.info(f"Installed routines: {', '.join(installed)}")
        logger.info("Database schema ready")
        return True
    except Exception as e:
        logger.error(f"Error initializing schema: {e}")
        return False
