import os
import sys

# Make the project importable when the server starts from another directory
project_home = os.path.dirname(os.path.abspath(__file__))
if project_home not in sys.path:
    sys.path.insert(0, project_home)

from app import create_app

application = create_app(os.environ.get('FLASK_ENV', 'production'))

if __name__ == '__main__':
    # host='0.0.0.0' allows access from other devices on the network
    application.run(host='0.0.0.0', port=int(os.environ.get('PORT', 5000)), use_reloader=False)
