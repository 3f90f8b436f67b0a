"""Run the chart-inflator command line tool."""

from chart_inflator.tool.chart_inflator import main

if __name__ == "__main__":
    main()
